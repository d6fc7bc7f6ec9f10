"""
QR encoder: device code -> PNG bytes.

The payload is the bare 16-digit device code; the dashboard's scanner
submits it unchanged to the claim endpoint.
"""
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def encode_qr(payload: str) -> bytes:
    qr = qrcode.QRCode(
        version=None,  # smallest version that fits
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
