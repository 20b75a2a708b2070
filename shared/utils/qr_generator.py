"""QR image rendering for signed attendance payloads"""
import base64
import io
import json
import logging
from typing import Any, Dict

import qrcode

logger = logging.getLogger(__name__)


def encode_payload(payload: Dict[str, Any]) -> str:
    """Compact JSON, the exact text a scanner reads back"""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def generate_qr_image_base64(qr_data: str) -> str:
    """
    Render ``qr_data`` as a PNG QR code.

    Args:
        qr_data: Text to encode (the JSON payload)

    Returns:
        Base64 of the PNG bytes
    """
    if not qr_data:
        raise ValueError("qr_data is empty")

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(qr_data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    img_buffer = io.BytesIO()
    img.save(img_buffer, format="PNG")
    img_bytes = img_buffer.getvalue()

    logger.debug(f"QR image rendered ({len(img_bytes)} bytes)")
    return base64.b64encode(img_bytes).decode("ascii")
