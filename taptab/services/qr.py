"""
QR codes pointing at a restaurant's short link.
"""

import io

import qrcode


def make_qr_png(url: str, box_size: int = 10, border: int = 4) -> bytes:
    """PNG bytes of a QR code encoding ``url``."""
    qr = qrcode.QRCode(version=1, box_size=box_size, border=border)
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
