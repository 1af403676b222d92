import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from store import SessionRegistry, get_registry
from whatsapp.config import CHAT_ID_SUFFIX
from whatsapp.errors import MessageSendError, MissingFieldsError, SessionNotReadyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["send"])


# ---------- Request / Response schemas ----------

class SendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    to: Optional[str] = None
    text: Optional[str] = None


class SendResponse(BaseModel):
    success: bool


# ---------- Shared send operation ----------

def to_chat_id(to: str) -> str:
    """Phone number (country code, digits only) → WhatsApp personal chat id."""
    return f"{to}{CHAT_ID_SUFFIX}"


async def deliver(
    registry: SessionRegistry,
    session_id: Optional[str],
    to: Optional[str],
    text: Optional[str],
) -> None:
    """
    Send `text` to `to` through the session's client.

    Raises MissingFieldsError before touching the registry, SessionNotReadyError
    for unknown or unpaired sessions, and MessageSendError (carrying the
    client's message) when the client itself fails.
    """
    if not session_id or not to or not text:
        raise MissingFieldsError()

    session = registry.get(session_id)
    if session is None or not session.ready:
        raise SessionNotReadyError(session_id)

    try:
        await session.client.send_message(to_chat_id(to), text)
    except Exception as e:
        logger.exception("Session %s: send error", session_id)
        raise MessageSendError(str(e) or type(e).__name__) from e


# ---------- Endpoints ----------

@router.post("/send", response_model=SendResponse)
async def send_message(
    body: Optional[SendRequest] = Body(default=None),
    registry: SessionRegistry = Depends(get_registry),
):
    body = body or SendRequest()
    try:
        await deliver(registry, body.session_id, body.to, body.text)
    except MissingFieldsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except MessageSendError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return SendResponse(success=True)


@router.get("/send", response_class=PlainTextResponse)
async def send_message_link(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    to: Optional[str] = None,
    text: Optional[str] = None,
    registry: SessionRegistry = Depends(get_registry),
):
    """Same as POST /send, but answers in plain text so it works as a clickable link."""
    try:
        await deliver(registry, session_id, to, text)
    except MissingFieldsError:
        return PlainTextResponse("❌ Missing sessionId, to, or text", status_code=400)
    except SessionNotReadyError:
        return PlainTextResponse("⏳ Session not ready", status_code=503)
    except MessageSendError as e:
        return PlainTextResponse(f"❌ Failed to send message: {e}", status_code=500)

    return PlainTextResponse("✅ Message sent successfully!")
