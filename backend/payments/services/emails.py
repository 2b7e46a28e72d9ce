from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from bookings.models import Booking

from .invoices import InvoiceData


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str


def send_email(
    *,
    to: str,
    subject: str,
    template_name: str,
    template_data: Dict[str, Any],
    attachments: Iterable[EmailAttachment] = (),
):
    """Render `emails/<template_name>.txt|.html` and send it; delivery errors propagate."""
    text_body = render_to_string(f"emails/{template_name}.txt", template_data)
    html_body = render_to_string(f"emails/{template_name}.html", template_data)

    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    message.attach_alternative(html_body, "text/html")
    for attachment in attachments:
        message.attach(attachment.filename, attachment.content, attachment.content_type)
    message.send(fail_silently=False)


def send_invoice_email(*, booking: Booking, invoice: InvoiceData, pdf_bytes: bytes):
    send_email(
        to=booking.user.email,
        subject="Your Booking Invoice",
        template_name="invoice",
        template_data=invoice.as_context(),
        attachments=[
            EmailAttachment(filename="invoice.pdf", content=pdf_bytes, content_type="application/pdf"),
        ],
    )
