"""
WhatsApp Web adapter configuration.

Every value can be overridden through the environment (or .env):
  WHATSAPP_AUTH_DIR=.wwebjs_auth
  WHATSAPP_HEADLESS=false
"""

import os

# Each session keeps its browser profile (login material) under
# <WHATSAPP_AUTH_DIR>/session-<session_id>
AUTH_DIR = os.environ.get("WHATSAPP_AUTH_DIR", ".wwebjs_auth")
HEADLESS = os.environ.get("WHATSAPP_HEADLESS", "true").lower() not in ("0", "false", "no")
WEB_URL = os.environ.get("WHATSAPP_WEB_URL", "https://web.whatsapp.com")

# Appended to a bare phone number to address a personal chat
CHAT_ID_SUFFIX = "@c.us"

# Playwright timeouts are in milliseconds
PAGE_LOAD_TIMEOUT_MS = int(os.environ.get("WHATSAPP_PAGE_LOAD_TIMEOUT_MS", "60000"))
CHAT_OPEN_TIMEOUT_MS = int(os.environ.get("WHATSAPP_CHAT_OPEN_TIMEOUT_MS", "30000"))
POLL_INTERVAL_SECONDS = float(os.environ.get("WHATSAPP_POLL_INTERVAL", "2"))

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
