from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from store import SessionRegistry, get_registry

router = APIRouter(tags=["register"])


# ---------- Response schema ----------

class RegisterResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pairing_image: Optional[str] = Field(default=None, alias="pairingImage")
    # Same value under the key older register pages read
    qr_data_url: Optional[str] = Field(default=None, alias="qrDataUrl")


# ---------- Endpoint ----------

@router.get("/register", response_model=RegisterResponse)
async def register(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    registry: SessionRegistry = Depends(get_registry),
):
    """
    Creates the session on first call (and starts its WhatsApp client).
    Returns the current QR as a PNG data URL, or null until one is issued.
    """
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId")

    session = registry.get_or_create(session_id)
    return RegisterResponse(
        pairing_image=session.qr_data_url,
        qr_data_url=session.qr_data_url,
    )
