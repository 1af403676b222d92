"""
In-memory session registry shared across all routes.

One SessionRegistry is created at startup (see main.lifespan) and handed to
route handlers through the get_registry dependency. Sessions live in a plain
dict for the lifetime of the process; nothing is persisted here, the
WhatsApp client keeps its own login material on disk.

Only client event callbacks mutate `ready` / `qr_data_url`. Route handlers
read them.
"""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import Request

from models.session import Session
from whatsapp.client import ClientEvent, MessagingClient, WhatsAppWebClient
from whatsapp.qr import to_data_url

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        client_factory: Optional[Callable[[str], MessagingClient]] = None,
        qr_encoder: Optional[Callable[[str], str]] = None,
    ):
        self._client_factory = client_factory or WhatsAppWebClient
        self._qr_encoder = qr_encoder or to_data_url
        self._sessions: dict[str, Session] = {}
        # Strong refs so pending initialize() tasks are not garbage collected
        self._tasks: set[asyncio.Task] = set()

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        """
        Return the session for `session_id`, creating it on first sight.

        A new session gets its own client, event wiring and a background
        initialize(); the call returns immediately with ready=False and no
        QR. Must be called from within the running event loop.
        """
        session = self._sessions.get(session_id)
        if session is not None:
            return session

        client = self._client_factory(session_id)
        session = Session(session_id=session_id, client=client)
        self._sessions[session_id] = session
        self._subscribe(session)
        logger.info("Session %s: created, initializing client", session_id)
        self._initialize(session)
        return session

    async def close(self) -> None:
        """Cancel pending initializations and close every client."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        for session in self._sessions.values():
            try:
                await session.client.close()
            except Exception:
                logger.exception("Session %s: client close failed", session.session_id)

    # ─── Event wiring ─────────────────────────────────────────────────

    def _subscribe(self, session: Session) -> None:
        session_id = session.session_id

        def on_qr(token: str) -> None:
            try:
                session.qr_data_url = self._qr_encoder(token)
            except Exception:
                logger.exception("Session %s: QR generation error", session_id)
                return
            logger.info("Session %s: QR generated", session_id)

        def on_ready() -> None:
            session.ready = True
            logger.info("Session %s: client ready", session_id)

        def on_auth_failure(reason=None) -> None:
            session.ready = False
            logger.error("Session %s: auth failure: %s", session_id, reason)

        def on_disconnected(reason=None) -> None:
            session.ready = False
            session.qr_data_url = None
            logger.warning("Session %s: disconnected: %s", session_id, reason)
            # Reconnect forever, no backoff
            self._initialize(session)

        client = session.client
        client.on(ClientEvent.QR, on_qr)
        client.on(ClientEvent.READY, on_ready)
        client.on(ClientEvent.AUTH_FAILURE, on_auth_failure)
        client.on(ClientEvent.DISCONNECTED, on_disconnected)

    def _initialize(self, session: Session) -> None:
        task = asyncio.create_task(session.client.initialize())
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_initialized(session.session_id, t))

    def _on_initialized(self, session_id: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Session %s: client initialization failed: %s",
                session_id, exc, exc_info=exc,
            )


def get_registry(request: Request) -> SessionRegistry:
    """FastAPI dependency: the registry created in the app lifespan."""
    return request.app.state.registry
