"""
WooCommerce webhook: an order payload becomes a delivery with its event plan
- Origin priority: payload origin, then the stored simulation config.
- X-API-Key is compared against WEBHOOK_API_KEY when one is configured.
"""

import hmac
import logging
import re
from dataclasses import replace

from fastapi import APIRouter, BackgroundTasks, Depends, Header
from sqlalchemy.orm import Session

from parcel_tracker.config import settings
from parcel_tracker.database import get_db
from parcel_tracker.exceptions import WebhookAuthError
from parcel_tracker.schemas.deliveries import DeliveryCreate
from parcel_tracker.schemas.webhooks import WebhookResponse, WooCommerceOrder
from parcel_tracker.services.activity import log_activity
from parcel_tracker.services.deliveries import create_delivery
from parcel_tracker.services.notifications import (
    build_notification,
    dispatch_notification,
    should_notify,
    tracking_url,
)
from parcel_tracker.services.simulation_config import load_simulation_config
from parcel_tracker.simulator.geo import find_or_create_city

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def verify_api_key(x_api_key: str | None = Header(None)):
    if not settings.WEBHOOK_API_KEY:
        return
    if not x_api_key:
        raise WebhookAuthError("API Key não fornecida")
    if not hmac.compare_digest(x_api_key, settings.WEBHOOK_API_KEY):
        raise WebhookAuthError("API Key inválida")


def order_to_delivery(order: WooCommerceOrder) -> DeliveryCreate:
    address = order.customer.address
    street = ", ".join(p for p in (address.street, address.number, address.complement) if p)
    description = ", ".join(f"{i.quantity}x {i.name}" for i in order.items) or f"Pedido #{order.order_id}"
    state = address.state.strip().upper() if address.state else None

    origin = order.origin
    return DeliveryCreate(
        recipient_name=order.customer.name,
        recipient_email=order.customer.email,
        recipient_phone=order.customer.phone,
        destination_address=street,
        destination_city=address.city,
        destination_state=state if state and len(state) == 2 else None,
        destination_zip=re.sub(r"\D", "", address.zip) if address.zip else None,
        sender_name=origin.company if origin else None,
        origin_address=origin.address if origin else None,
        origin_city=origin.city if origin and origin.city and origin.state else None,
        origin_state=origin.state if origin and origin.city and origin.state else None,
        origin_zip=origin.zip if origin else None,
        package_description=description,
        package_weight=order.weight,
    )


@router.post("/woocommerce", response_model=WebhookResponse, dependencies=[Depends(verify_api_key)])
def woocommerce_order(
    order: WooCommerceOrder,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    logger.info(f"[WooCommerce] order {order.order_id} received")
    payload = order_to_delivery(order)

    config = load_simulation_config(db)
    if payload.origin_city:
        place = find_or_create_city(payload.origin_city, payload.origin_state)
        config = replace(
            config,
            origin_company_name=payload.sender_name or config.origin_company_name,
            origin_city=payload.origin_city,
            origin_state=payload.origin_state,
            origin_lat=place.lat,
            origin_lng=place.lng,
        )

    delivery, events = create_delivery(db, payload, config)

    log_activity(db, "webhook_woocommerce", "delivery", delivery.id, {
        "order_id": str(order.order_id),
        "tracking_code": delivery.tracking_code,
        "city": order.customer.address.city,
    })
    db.commit()

    if should_notify(delivery, delivery.status):
        background_tasks.add_task(dispatch_notification, build_notification(delivery, delivery.status))

    logger.info(f"[WooCommerce] order {order.order_id} -> {delivery.tracking_code} ({events} events)")
    return WebhookResponse(
        success=True,
        delivery_id=delivery.id,
        tracking_code=delivery.tracking_code,
        estimated_delivery=delivery.estimated_delivery,
        tracking_url=tracking_url(delivery.tracking_code),
        events_generated=events,
    )
