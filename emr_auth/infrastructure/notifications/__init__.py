from .dispatcher import NotificationDispatcher
from .twilio_channels import TwilioClientProvider, TwilioSmsChannel, TwilioWhatsAppChannel

__all__ = [
    "NotificationDispatcher",
    "TwilioClientProvider",
    "TwilioSmsChannel",
    "TwilioWhatsAppChannel",
]
