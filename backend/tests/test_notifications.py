from datetime import date

from parcel_tracker.models import DeliveryStatus
from parcel_tracker.services.notifications import build_notification, dispatch_notification, should_notify
from parcel_tracker.simulator.event_bus import EventBus, event_bus


class BrokenBus:
    def publish(self, stream, data):
        raise RuntimeError("bus down")


def test_build_notification(make_delivery):
    delivery = make_delivery(recipient_phone="21999990000", estimated_delivery=date(2024, 1, 18),
                             current_location="Curitiba, PR")

    data = build_notification(delivery, DeliveryStatus.IN_TRANSIT)

    assert data["phone"] == "21999990000"
    assert data["status"] == "in_transit"
    assert data["status_label"] == "Em Trânsito"
    assert data["location"] == "Curitiba, PR"
    assert data["estimated_delivery"] == "2024-01-18"
    assert data["tracking_url"].endswith("/rastrear/CF000000001BR")
    assert data["message"].startswith("Olá Ana!")
    assert "(Curitiba, PR)" in data["message"]


def test_should_notify(make_delivery):
    assert should_notify(make_delivery(recipient_phone="21999990000"), DeliveryStatus.DELIVERED)
    assert not should_notify(make_delivery(recipient_phone=None), DeliveryStatus.DELIVERED)
    assert not should_notify(make_delivery(recipient_phone="21999990000"), DeliveryStatus.RETURNED)


def test_dispatch_publishes_to_stream():
    dispatch_notification({"tracking_code": "CF000000001BR", "status": "delivered"})
    queued = event_bus.memory.get_recent("notifications.requested")
    assert queued[-1]["data"]["status"] == "delivered"


def test_dispatch_never_raises():
    dispatch_notification({"tracking_code": "CF000000001BR", "status": "delivered"}, bus=BrokenBus())


def test_bus_without_redis_url_uses_memory():
    bus = EventBus("")
    assert bus.is_redis is False
    bus.publish("deliveries.created", {"delivery_id": 1})
    assert bus.get_recent("deliveries.created")[0]["data"] == {"delivery_id": 1}


def test_bus_with_invalid_url_falls_back():
    bus = EventBus("not-a-redis-url")
    assert bus.is_redis is False
