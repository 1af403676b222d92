"""
Messaging client adapters.

MessagingClient is the seam the session registry talks to: initialize(),
send_message(), close() and a tiny event emitter with four events
(qr / ready / auth_failure / disconnected).

WhatsAppWebClient drives web.whatsapp.com in a headless Chromium via
Playwright. Each session gets its own persistent browser profile, so a
paired phone survives process restarts without re-scanning.

Page heuristics:
  - Logged in   → the chat side panel (#side) is rendered
  - Pairing     → the QR container exposes the raw token in data-ref
  - Logged out  → a QR shows up again after we were logged in
  - Auth rejected → a QR shows up although the profile holds a .paired marker
  - Page/browser gone → treated as a disconnect
"""

import asyncio
import logging
import os
from enum import Enum
from typing import Callable, Optional, Union
from urllib.parse import quote

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from whatsapp.config import (
    AUTH_DIR,
    BROWSER_ARGS,
    CHAT_OPEN_TIMEOUT_MS,
    HEADLESS,
    PAGE_LOAD_TIMEOUT_MS,
    POLL_INTERVAL_SECONDS,
    USER_AGENT,
    WEB_URL,
)
from whatsapp.errors import ClientError

logger = logging.getLogger(__name__)


class ClientEvent(str, Enum):
    QR = "qr"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"


Handler = Callable[..., None]


class MessagingClient:
    """Base adapter: subclasses implement initialize / send_message / close."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._handlers: dict[ClientEvent, list[Handler]] = {event: [] for event in ClientEvent}

    def on(self, event: Union[ClientEvent, str], handler: Handler) -> None:
        self._handlers[ClientEvent(event)].append(handler)

    def emit(self, event: Union[ClientEvent, str], *args) -> None:
        """Call every handler for `event`. A failing handler never stops the others."""
        for handler in list(self._handlers[ClientEvent(event)]):
            try:
                handler(*args)
            except Exception:
                logger.exception(
                    "Session %s: %s handler raised", self.session_id, ClientEvent(event).value
                )

    async def initialize(self) -> None:
        raise NotImplementedError

    async def send_message(self, chat_id: str, text: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


# ─── Selectors ────────────────────────────────────────────────────────

LOGGED_IN_SELECTOR = '#side, [data-testid="chat-list"]'
QR_SELECTOR = "div[data-ref]"
COMPOSE_SELECTOR = 'footer div[contenteditable="true"]'
INVALID_NUMBER_SELECTOR = 'div[data-testid="popup-controls-ok"]'

# Written into the profile once WhatsApp shows the chat list; removed on logout
PAIRED_MARKER = ".paired"


class WhatsAppWebClient(MessagingClient):

    def __init__(
        self,
        session_id: str,
        auth_dir: str = AUTH_DIR,
        headless: bool = HEADLESS,
    ):
        super().__init__(session_id)
        self.profile_dir = os.path.join(auth_dir, f"session-{session_id}")
        self.paired_marker = os.path.join(self.profile_dir, PAIRED_MARKER)
        self.headless = headless
        self._playwright = None
        self._context = None
        self._page = None
        self._watcher: Optional[asyncio.Task] = None
        self._ready = False
        # Serialises page access between the watcher and send_message
        self._page_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Launch the browser, open WhatsApp Web and start watching the page.

        Safe to call again after a disconnect: the previous browser is
        closed first and the same profile directory is reused.
        """
        await self._shutdown()

        had_login = self.has_stored_login()
        os.makedirs(self.profile_dir, exist_ok=True)

        logger.info("Session %s: launching browser (profile=%s)", self.session_id, self.profile_dir)
        self._playwright = await async_playwright().start()
        self._context = await self._playwright.chromium.launch_persistent_context(
            user_data_dir=self.profile_dir,
            headless=self.headless,
            args=BROWSER_ARGS,
            user_agent=USER_AGENT,
            viewport={"width": 1280, "height": 800},
            locale="en-US",
        )
        pages = self._context.pages
        self._page = pages[0] if pages else await self._context.new_page()
        await self._page.goto(WEB_URL, wait_until="domcontentloaded", timeout=PAGE_LOAD_TIMEOUT_MS)

        self._watcher = asyncio.create_task(self._watch(had_login))

    async def send_message(self, chat_id: str, text: str) -> None:
        if self._page is None or not self._ready:
            raise ClientError("Client is not ready")

        phone = chat_id.split("@", 1)[0]
        async with self._page_lock:
            page = self._page
            await page.goto(
                f"{WEB_URL}/send?phone={quote(phone, safe='')}",
                wait_until="domcontentloaded",
                timeout=PAGE_LOAD_TIMEOUT_MS,
            )
            try:
                await page.wait_for_selector(
                    f"{COMPOSE_SELECTOR}, {INVALID_NUMBER_SELECTOR}",
                    timeout=CHAT_OPEN_TIMEOUT_MS,
                )
            except PlaywrightTimeoutError as e:
                raise ClientError(f"Chat with {phone} did not open") from e

            popup = page.locator(INVALID_NUMBER_SELECTOR)
            if await popup.count() > 0:
                await popup.first.click()
                raise ClientError(f"Phone number {phone} is not on WhatsApp")

            compose = page.locator(COMPOSE_SELECTOR).first
            await compose.click()
            await compose.fill(text)
            await compose.press("Enter")

        logger.info("Session %s: message sent to %s", self.session_id, chat_id)

    async def close(self) -> None:
        await self._shutdown()

    def has_stored_login(self) -> bool:
        """True once this profile has completed pairing and not logged out since."""
        return os.path.isfile(self.paired_marker)

    # ─── Internals ────────────────────────────────────────────────────

    async def _watch(self, had_login: bool) -> None:
        """Poll the page and translate what it shows into client events."""
        last_token = None
        while True:
            try:
                async with self._page_lock:
                    event = await self._inspect(had_login, last_token)
            except (PlaywrightError, ClientError) as e:
                if self._page is None:
                    return
                self._ready = False
                self.emit(ClientEvent.DISCONNECTED, str(e))
                return

            if event is not None:
                kind, payload = event
                if kind is ClientEvent.QR:
                    last_token = payload
                elif kind is ClientEvent.AUTH_FAILURE:
                    had_login = False
                elif kind is ClientEvent.DISCONNECTED:
                    return

            await asyncio.sleep(POLL_INTERVAL_SECONDS)

    async def _inspect(self, had_login: bool, last_token: Optional[str]):
        page = self._page
        if page is None or page.is_closed():
            raise ClientError("Browser page closed")

        if await page.locator(LOGGED_IN_SELECTOR).count() > 0:
            if not self._ready:
                self._ready = True
                self._set_stored_login(True)
                self.emit(ClientEvent.READY)
                return ClientEvent.READY, None
            return None

        qr = page.locator(QR_SELECTOR)
        if await qr.count() == 0:
            return None
        token = await qr.first.get_attribute("data-ref")
        if not token:
            return None

        if self._ready:
            self._ready = False
            self._set_stored_login(False)
            self.emit(ClientEvent.DISCONNECTED, "LOGOUT")
            return ClientEvent.DISCONNECTED, "LOGOUT"
        if had_login:
            # A stored login existed but WhatsApp asks to pair again
            self._set_stored_login(False)
            self.emit(ClientEvent.AUTH_FAILURE, "Stored session was rejected")
            return ClientEvent.AUTH_FAILURE, None
        if token != last_token:
            self.emit(ClientEvent.QR, token)
            return ClientEvent.QR, token
        return None

    def _set_stored_login(self, paired: bool) -> None:
        if paired:
            os.makedirs(self.profile_dir, exist_ok=True)
            with open(self.paired_marker, "w") as f:
                f.write(self.session_id)
        elif os.path.exists(self.paired_marker):
            os.remove(self.paired_marker)

    async def _shutdown(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None and watcher is not asyncio.current_task() and not watcher.done():
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass

        context, self._context = self._context, None
        playwright, self._playwright = self._playwright, None
        self._page = None
        self._ready = False

        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning("Session %s: browser close failed: %s", self.session_id, e)
        if playwright is not None:
            await playwright.stop()
