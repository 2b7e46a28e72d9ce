from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from bookings.models import Booking
from payments.models import Payment

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


@dataclass(frozen=True)
class InvoiceData:
    """Everything printed on an invoice, also used as the email template context."""

    booking_date: datetime
    guest_count: int
    total_amount: Decimal
    tour_title: str
    transaction_id: str
    user_name: str
    currency: str = "usd"

    def as_context(self) -> Dict[str, Any]:
        return asdict(self)


def build_invoice_data(*, payment: Payment, booking: Booking) -> InvoiceData:
    return InvoiceData(
        booking_date=booking.created_at,
        guest_count=booking.guest_count,
        total_amount=payment.amount,
        tour_title=booking.trip.title,
        transaction_id=payment.transaction_id,
        user_name=booking.user.display_name,
        currency=payment.currency,
    )


def _draw_wrapped(c: canvas.Canvas, text: str, x: float, y: float, max_width: float, line_h: float) -> float:
    for line in simpleSplit(text, FONT_REGULAR, 10, max_width):
        c.drawString(x, y, line)
        y -= line_h
    return y


def render_invoice_pdf(data: InvoiceData) -> bytes:
    """Render a one-page invoice and return the PDF bytes."""
    width, height = A4
    x = 40
    y = height - 50
    line_h = 16
    max_width = width - 2 * x

    buf = BytesIO()
    try:
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(f"Invoice {data.transaction_id}")

        c.setFont(FONT_BOLD, 16)
        c.drawString(x, y, "Booking Invoice")
        y -= 2 * line_h

        c.setFont(FONT_REGULAR, 10)
        c.drawString(x, y, f"Transaction ID: {data.transaction_id}")
        y -= line_h
        c.drawString(x, y, f"Booking date: {data.booking_date:%B %d, %Y}")
        y -= 2 * line_h

        c.setFont(FONT_BOLD, 11)
        c.drawString(x, y, "Customer")
        y -= line_h
        c.setFont(FONT_REGULAR, 10)
        c.drawString(x, y, data.user_name or "-")
        y -= 2 * line_h

        c.setFont(FONT_BOLD, 11)
        c.drawString(x, y, "Tour")
        y -= line_h
        c.setFont(FONT_REGULAR, 10)
        y = _draw_wrapped(c, data.tour_title or "-", x, y, max_width, line_h)
        c.drawString(x, y, f"Guests: {data.guest_count}")
        y -= 2 * line_h

        c.setFont(FONT_BOLD, 12)
        c.drawString(x, y, f"Total paid: {data.total_amount:.2f} {data.currency.upper()}")

        c.setFont(FONT_REGULAR, 9)
        c.drawString(x, 40, "This invoice was generated electronically and is valid without a signature.")

        c.showPage()
        c.save()
        pdf_bytes = buf.getvalue()
    finally:
        buf.close()

    return pdf_bytes
