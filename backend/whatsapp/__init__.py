from whatsapp.client import ClientEvent, MessagingClient, WhatsAppWebClient
from whatsapp.errors import (
    ClientError,
    GatewayError,
    MessageSendError,
    MissingFieldsError,
    SessionNotReadyError,
)
from whatsapp.qr import to_data_url

__all__ = [
    "ClientEvent",
    "MessagingClient",
    "WhatsAppWebClient",
    "ClientError",
    "GatewayError",
    "MessageSendError",
    "MissingFieldsError",
    "SessionNotReadyError",
    "to_data_url",
]
