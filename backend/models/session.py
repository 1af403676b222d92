from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from whatsapp.client import MessagingClient


class Session(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str = Field(frozen=True)
    client: MessagingClient = Field(frozen=True, exclude=True)
    ready: bool = False
    qr_data_url: Optional[str] = None       # PNG data URL of the current pairing token
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
