class GatewayError(Exception):
    """Base class for errors raised while serving a gateway request."""


class MissingFieldsError(GatewayError):
    def __init__(self, message: str = "Missing sessionId, to, or text"):
        super().__init__(message)


class SessionNotReadyError(GatewayError):
    def __init__(self, session_id: str):
        super().__init__("Session not ready")
        self.session_id = session_id


class MessageSendError(GatewayError):
    """The messaging client failed to deliver; str() is the client's message."""


class ClientError(Exception):
    """Raised by a messaging client when the browser page misbehaves."""
