"""
Pairing-token → PNG data URL.

WhatsApp Web hands out the pairing token as an opaque string; the phone app
expects to scan it as a QR code, so we render it server-side and ship the
image inline to the browser.
"""

import base64
import io

import qrcode

DATA_URL_PREFIX = "data:image/png;base64,"


def to_data_url(token: str) -> str:
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=4,
    )
    qr.add_data(token)
    qr.make(fit=True)
    img = qr.make_image(fill_color="#000000", back_color="#FFFFFF")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return DATA_URL_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")
