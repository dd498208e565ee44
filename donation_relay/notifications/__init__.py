"""
Module 'notifications': composition et envoi des e-mails de dons.
"""

from .models import NotificationMessage, SendResult
from .composer import NotificationComposer, format_amount, newsletter_label
from .transport import SendGridTransport

__all__ = [
    "NotificationMessage",
    "SendResult",
    "NotificationComposer",
    "format_amount",
    "newsletter_label",
    "SendGridTransport",
]
