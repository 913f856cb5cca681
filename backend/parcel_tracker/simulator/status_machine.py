"""
Delivery status state machine, shared by the scheduler, manual updates and the executor.

    pending -> collected -> in_transit -> out_for_delivery -> delivered

- failed:   reachable from any non-final status; failed -> in_transit is a retry
- returned: reachable from any non-final status; final
- delivered: final

delivered, failed and returned are terminal for scheduling: no events are planned.
"""

from parcel_tracker.exceptions import InvalidStatusTransitionError
from parcel_tracker.models.delivery import DeliveryStatus

PROGRESSION: list[DeliveryStatus] = [
    DeliveryStatus.PENDING,
    DeliveryStatus.COLLECTED,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.OUT_FOR_DELIVERY,
    DeliveryStatus.DELIVERED,
]

EXCEPTION_STATUSES = frozenset({DeliveryStatus.FAILED, DeliveryStatus.RETURNED})

# No transitions leave these
FINAL_STATUSES = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.RETURNED})

# No events are generated for these; assigning one manually voids the remaining plan
TERMINAL_STATUSES = frozenset({
    DeliveryStatus.DELIVERED,
    DeliveryStatus.FAILED,
    DeliveryStatus.RETURNED,
})

STATUS_LABELS: dict[DeliveryStatus, str] = {
    DeliveryStatus.PENDING: "Aguardando Coleta",
    DeliveryStatus.COLLECTED: "Coletado",
    DeliveryStatus.IN_TRANSIT: "Em Trânsito",
    DeliveryStatus.OUT_FOR_DELIVERY: "Saiu para Entrega",
    DeliveryStatus.DELIVERED: "Entregue",
    DeliveryStatus.FAILED: "Tentativa Falhou",
    DeliveryStatus.RETURNED: "Devolvido",
}

_PROGRESS: dict[DeliveryStatus, int] = {
    DeliveryStatus.PENDING: 0,
    DeliveryStatus.COLLECTED: 15,
    DeliveryStatus.IN_TRANSIT: 50,
    DeliveryStatus.OUT_FOR_DELIVERY: 85,
    DeliveryStatus.DELIVERED: 100,
    DeliveryStatus.FAILED: 85,
    DeliveryStatus.RETURNED: 50,
}


def _coerce(status) -> DeliveryStatus:
    return status if isinstance(status, DeliveryStatus) else DeliveryStatus(status)


def is_terminal(status) -> bool:
    return _coerce(status) in TERMINAL_STATUSES


def is_valid_transition(current, new) -> bool:
    current, new = _coerce(current), _coerce(new)

    # Same status is a no-op (e.g. another in_transit location report)
    if current == new:
        return True
    if current in FINAL_STATUSES:
        return False
    if new in EXCEPTION_STATUSES:
        return True
    if current == DeliveryStatus.FAILED:
        return new == DeliveryStatus.IN_TRANSIT

    return PROGRESSION.index(new) > PROGRESSION.index(current)


def validate_transition(current, new) -> None:
    """Raise InvalidStatusTransitionError when current -> new is not allowed."""
    if not is_valid_transition(current, new):
        current, new = _coerce(current), _coerce(new)
        raise InvalidStatusTransitionError(
            f"Transição inválida: {STATUS_LABELS[current]} → {STATUS_LABELS[new]}"
        )


def allowed_next_statuses(current) -> list[DeliveryStatus]:
    """Statuses a delivery may move to from current (excluding a same-status no-op)."""
    current = _coerce(current)
    return [s for s in DeliveryStatus if s != current and is_valid_transition(current, s)]


def remaining_stages(current) -> list[DeliveryStatus]:
    """
    Progression stages still to be traversed after current, through delivered.
    Terminal statuses have none.
    """
    current = _coerce(current)
    if current in TERMINAL_STATUSES:
        return []
    return PROGRESSION[PROGRESSION.index(current) + 1:]


def status_progress(status) -> int:
    """Customer-facing progress percentage (0-100)."""
    return _PROGRESS.get(_coerce(status), 0)
