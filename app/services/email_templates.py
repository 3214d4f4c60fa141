"""HTML bodies for booking lifecycle emails."""

from dataclasses import dataclass
from datetime import UTC, datetime
from html import escape

from app.utils.formatting import format_booking_date, format_booking_time, format_price

BRAND_NAME = "Opaleka"
CURRENCY_PREFIX = "N$"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def _rows_html(rows: list[tuple[str, str]]) -> str:
    cell = "padding: 8px; border: 1px solid #e0e0e0;"
    return "".join(
        f"""
            <tr>
                <td style="{cell} background-color: #f9f9f9; font-weight: bold;">{escape(label)}</td>
                <td style="{cell}">{escape(value)}</td>
            </tr>"""
        for label, value in rows
    )


def _layout(heading: str, greeting_name: str, intro: str, rows: list[tuple[str, str]], outro: str) -> str:
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <h2 style="color: #1a237e;">{escape(heading)}</h2>
            <p>Dear <strong>{escape(greeting_name)}</strong>,</p>
            <p>{intro}</p>
            <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">{_rows_html(rows)}
            </table>
            <p>{outro}</p>
            <p>Best regards,</p>
            <p><strong>{BRAND_NAME} Team</strong></p>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {BRAND_NAME}. All rights reserved.
            </p>
        </body>
        </html>
        """


def new_booking_email(
    provider_name: str,
    client_name: str,
    client_email: str,
    client_phone: str | None,
    service_name: str,
    date: str,
    time: str,
    price,
    address: str,
) -> RenderedEmail:
    """Email to a provider announcing a new booking request."""
    rows = [
        ("Service", service_name),
        ("Date", date),
        ("Time", time),
        ("Price", f"{CURRENCY_PREFIX}{format_price(price)}"),
        ("Client Email", client_email),
        ("Client Phone", client_phone or "-"),
        ("Client Address", address),
    ]
    html = _layout(
        heading="New Booking Received",
        greeting_name=provider_name,
        intro=(
            f"You have received a new booking request from <strong>{escape(client_name)}</strong>. "
            "Please find the details below:"
        ),
        rows=rows,
        outro="To view more details, please log in to your dashboard.",
    )
    return RenderedEmail(subject=f"New Booking Notification - {service_name}", html=html)


def booking_confirmed_email(client_name: str, service_name: str, date: str, time: str) -> RenderedEmail:
    """Email to a client whose booking the provider accepted."""
    html = _layout(
        heading="Your Booking is Confirmed",
        greeting_name=client_name,
        intro=(
            f"We are pleased to inform you that your booking for <strong>{escape(service_name)}</strong> "
            "has been successfully confirmed."
        ),
        rows=[("Date", format_booking_date(date)), ("Time", format_booking_time(time))],
        outro=(
            "For any questions or further assistance, feel free to contact your service provider. "
            f"Thank you for choosing {BRAND_NAME}!"
        ),
    )
    return RenderedEmail(subject=f"Your Booking is Confirmed - {service_name}", html=html)


def booking_rejected_email(client_name: str, service_name: str, date: str, time: str) -> RenderedEmail:
    """Email to a client whose booking the provider declined."""
    html = _layout(
        heading="Your Booking Request Has Been Rejected",
        greeting_name=client_name,
        intro=(
            f"We regret to inform you that your booking request for <strong>{escape(service_name)}</strong> "
            "has been rejected."
        ),
        rows=[("Date", format_booking_date(date)), ("Time", format_booking_time(time))],
        outro=(
            "We apologize for any inconvenience. "
            "You may try booking another provider or rescheduling your appointment."
        ),
    )
    return RenderedEmail(subject=f"Booking Rejected - {service_name}", html=html)


def job_completed_email(
    client_name: str,
    provider_name: str,
    provider_email: str,
    service_name: str,
    date: str,
    time: str,
) -> RenderedEmail:
    """Email to a client inviting a rating after the job is done."""
    html = _layout(
        heading="Your Job is Completed",
        greeting_name=client_name,
        intro=f"Your booking for <strong>{escape(service_name)}</strong> has been successfully completed.",
        rows=[
            ("Date", format_booking_date(date)),
            ("Time", format_booking_time(time)),
            ("Provider", f"{provider_name} ({provider_email})"),
        ],
        outro=(
            "We hope you had a great experience! Please take a moment to "
            f"<strong>rate your service provider</strong>. Your feedback helps improve the quality of services on {BRAND_NAME}."
        ),
    )
    return RenderedEmail(subject=f"Job Completed - {service_name}", html=html)
