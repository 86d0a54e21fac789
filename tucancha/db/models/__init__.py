from tucancha.db.models.booking import Booking, BookingStatus, PaymentStatus
from tucancha.db.models.booking_notification import BookingNotification, DeliveryStatus, NotificationChannel
from tucancha.db.models.disabled_slot import DisabledSlot
from tucancha.db.models.push_subscription import PushSubscription
from tucancha.db.models.user import User, UserRole
from tucancha.db.models.venue import Court, SportType, Venue

__all__ = [
    "User",
    "UserRole",
    "Venue",
    "Court",
    "SportType",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "DisabledSlot",
    "PushSubscription",
    "BookingNotification",
    "NotificationChannel",
    "DeliveryStatus",
]
