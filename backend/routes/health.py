from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from store import SessionRegistry, get_registry

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: Literal["initializing", "ready"]


@router.get("/health", response_model=HealthResponse)
async def health(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    registry: SessionRegistry = Depends(get_registry),
):
    """Readiness of a session. Unknown ids report "initializing" and are not created."""
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId")

    session = registry.get(session_id)
    if session is None or not session.ready:
        return HealthResponse(status="initializing")
    return HealthResponse(status="ready")
