from fastapi import Request

from studio_booking.core.config import get_settings
from studio_booking.services.notification import NotificationRelay, build_notification_relay


def get_notification_relay(request: Request) -> NotificationRelay:
    """
    Relay de notificaciones del proceso. Se crea en el lifespan de la app; si
    la app se usa sin lifespan se construye en el primer uso.
    """
    relay = getattr(request.app.state, "notification_relay", None)
    if relay is None:
        relay = build_notification_relay(get_settings())
        request.app.state.notification_relay = relay
    return relay
