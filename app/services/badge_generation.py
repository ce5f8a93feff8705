"""
Badge Generation Service

Renders a printable one-page PDF badge for a registrant with a QR code
carrying its ticket code.
"""

import io
import json
import logging
from typing import Any

import qrcode
from reportlab.lib.colors import HexColor, black, white
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

BADGE_WIDTH = 360
BADGE_HEIGHT = 520

ROLE_COLORS = {
    "visitor": "#1d4ed8",
    "exhibitor": "#047857",
    "partner": "#7c3aed",
    "speaker": "#b45309",
    "awardee": "#be123c",
}


def qr_payload(record: Any) -> str:
    return json.dumps(
        {
            "ticket_code": record.ticket_code,
            "name": record.display_name,
            "role": record.role,
        }
    )


def generate_qr_image(data: str, box_size: int = 10) -> ImageReader:
    """QR code as an image ReportLab can draw."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return ImageReader(buffer)


def _fit_text(pdf: canvas.Canvas, text: str, font: str, size: int, max_width: float) -> int:
    while size > 8 and pdf.stringWidth(text, font, size) > max_width:
        size -= 1
    return size


def render_badge(entity_type: str, record: Any, mode: str = "email") -> bytes:
    """Render the badge PDF for ``record``; ``mode`` is "email" or "scan"."""
    if not getattr(record, "ticket_code", None):
        raise ValidationError("Registrant has no ticket code")

    role = (record.role or entity_type or "").rstrip("s").lower()
    accent = HexColor(ROLE_COLORS.get(role, "#111827"))
    qr_size = 220 if mode == "scan" else 170

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(BADGE_WIDTH, BADGE_HEIGHT))
    pdf.setTitle(f"{settings.EVENT_NAME} - {record.ticket_code}")

    # Header band
    pdf.setFillColor(accent)
    pdf.rect(0, BADGE_HEIGHT - 90, BADGE_WIDTH, 90, stroke=0, fill=1)
    pdf.setFillColor(white)
    size = _fit_text(pdf, settings.EVENT_NAME, "Helvetica-Bold", 20, BADGE_WIDTH - 40)
    pdf.setFont("Helvetica-Bold", size)
    pdf.drawCentredString(BADGE_WIDTH / 2, BADGE_HEIGHT - 50, settings.EVENT_NAME)
    pdf.setFont("Helvetica", 12)
    pdf.drawCentredString(BADGE_WIDTH / 2, BADGE_HEIGHT - 72, (record.ticket_category or role).upper())

    # Holder
    pdf.setFillColor(black)
    name = record.display_name or "Guest"
    size = _fit_text(pdf, name, "Helvetica-Bold", 22, BADGE_WIDTH - 40)
    pdf.setFont("Helvetica-Bold", size)
    pdf.drawCentredString(BADGE_WIDTH / 2, BADGE_HEIGHT - 130, name)
    company = record.display_company
    if company:
        size = _fit_text(pdf, company, "Helvetica", 14, BADGE_WIDTH - 40)
        pdf.setFont("Helvetica", size)
        pdf.drawCentredString(BADGE_WIDTH / 2, BADGE_HEIGHT - 152, company)

    # QR code
    qr_image = generate_qr_image(qr_payload(record))
    qr_y = 70 if mode == "scan" else 95
    pdf.drawImage(qr_image, (BADGE_WIDTH - qr_size) / 2, qr_y, qr_size, qr_size)

    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawCentredString(BADGE_WIDTH / 2, qr_y - 22, record.ticket_code)

    # Footer band
    pdf.setFillColor(accent)
    pdf.rect(0, 0, BADGE_WIDTH, 28, stroke=0, fill=1)
    pdf.setFillColor(white)
    pdf.setFont("Helvetica", 8)
    pdf.drawCentredString(BADGE_WIDTH / 2, 10, settings.EVENT_TAGLINE)

    pdf.showPage()
    pdf.save()
    logger.info(f"🪪 Rendered {mode} badge for {entity_type} {record.ticket_code}")
    return buffer.getvalue()
