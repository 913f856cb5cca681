"""
Notification data for status changes
- Only structured data is produced; delivering it (WhatsApp, e-mail) is left to
  consumers of the notifications.requested stream.
- dispatch_notification runs as a FastAPI background task and never raises.
"""

import logging

from parcel_tracker.config import settings
from parcel_tracker.models.delivery import Delivery, DeliveryStatus
from parcel_tracker.simulator.event_bus import EventBus, event_bus
from parcel_tracker.simulator.status_machine import STATUS_LABELS

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATES: dict[DeliveryStatus, str] = {
    DeliveryStatus.PENDING: "Olá {name}! Seu pedido foi recebido. Código de rastreio: {code}.",
    DeliveryStatus.COLLECTED: "Olá {name}! Seu pedido {code} foi coletado e está em processamento.",
    DeliveryStatus.IN_TRANSIT: "Olá {name}! Seu pedido {code} está em trânsito{location}.",
    DeliveryStatus.OUT_FOR_DELIVERY: "Olá {name}! Seu pedido {code} saiu para entrega hoje.",
    DeliveryStatus.DELIVERED: "Olá {name}! Seu pedido {code} foi entregue. Obrigado!",
    DeliveryStatus.FAILED: "Olá {name}! Não conseguimos entregar o pedido {code}. Faremos nova tentativa.",
    DeliveryStatus.RETURNED: "Olá {name}! O pedido {code} foi devolvido ao remetente.",
}


def tracking_url(tracking_code: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/rastrear/{tracking_code}"


def should_notify(delivery: Delivery, status: DeliveryStatus) -> bool:
    return bool(delivery.recipient_phone) and status.value in settings.NOTIFY_STATUSES


def build_notification(delivery: Delivery, status: DeliveryStatus, location: str | None = None) -> dict:
    location = location or delivery.current_location
    name = (delivery.recipient_name or "Cliente").split()[0]
    message = MESSAGE_TEMPLATES[status].format(
        name=name,
        code=delivery.tracking_code,
        location=f" ({location})" if location else "",
    )
    return {
        "phone": delivery.recipient_phone,
        "tracking_code": delivery.tracking_code,
        "recipient_name": delivery.recipient_name,
        "status": status.value,
        "status_label": STATUS_LABELS[status],
        "location": location,
        "estimated_delivery": delivery.estimated_delivery.isoformat() if delivery.estimated_delivery else None,
        "tracking_url": tracking_url(delivery.tracking_code),
        "message": f"{message} Acompanhe: {tracking_url(delivery.tracking_code)}",
    }


def dispatch_notification(notification: dict, bus: EventBus | None = None) -> None:
    try:
        (bus or event_bus).publish("notifications.requested", notification)
        logger.info(f"Notification queued for {notification.get('tracking_code')} ({notification.get('status')})")
    except Exception as e:
        logger.error(f"Notification dispatch failed for {notification.get('tracking_code')}: {e}")
