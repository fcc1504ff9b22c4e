"""
Ticket code generation and QR rendering.

Codes look like PP-<base36 epoch millis>-<6 hex chars>: the time prefix keeps
codes from different milliseconds apart, the random suffix separates codes
minted in the same millisecond. The tickets.ticket_code unique index is the
authority; ticket_service retries on the rare collision.
"""

import base64
import re
import secrets
import time
from io import BytesIO

import qrcode

from partypass.core.exceptions import ValidationFailed

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_DATA_URL = re.compile(r"^data:image/(png|jpeg);base64,(.+)$", re.DOTALL)


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_ticket_code(prefix: str = "PP") -> str:
    millis = int(time.time() * 1000)
    return f"{prefix}-{to_base36(millis)}-{secrets.token_hex(3)}"


def render_qr_png(payload: str) -> bytes:
    image = qrcode.make(payload)
    buffered = BytesIO()
    image.save(buffered, format="PNG")
    return buffered.getvalue()


def render_qr_data_url(payload: str) -> str:
    """Encode `payload` as a QR code and return it as an embeddable PNG data URL."""
    encoded = base64.b64encode(render_qr_png(payload)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def decode_qr_data_url(data_url: str) -> bytes:
    match = _DATA_URL.match(data_url or "")
    if not match:
        raise ValidationFailed("QR data missing")
    try:
        return base64.b64decode(match.group(2), validate=True)
    except ValueError:
        raise ValidationFailed("QR data missing")
