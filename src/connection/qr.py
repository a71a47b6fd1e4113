"""Render QR payloads as images the pairing page and API can embed."""

import segno

QR_TARGET_SIZE = 256
QR_BORDER = 4


def qr_to_data_url(payload: str, *, size: int = QR_TARGET_SIZE) -> str:
    """Render a QR payload as a PNG data URL.

    Uses error correction level H and a four-module quiet zone, black on
    white, scaled to roughly ``size`` pixels.

    Args:
        payload: Raw QR string issued by the messaging client.
        size: Target image width in pixels.

    Returns:
        ``data:image/png;base64,...`` string.
    """
    qr = segno.make(payload, error="h", micro=False)
    width, _ = qr.symbol_size(scale=1, border=QR_BORDER)
    scale = max(1, size // width)
    return qr.png_data_uri(scale=scale, border=QR_BORDER, dark="#000000", light="#ffffff")
