# app/services/email/email_service.py
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import List, Optional
from zoneinfo import ZoneInfo
import logging

from app.config.settings import settings

logger = logging.getLogger(__name__)

STATUS_SUBJECTS = {
    "approve": "Your booking is confirmed",
    "propose": "A new time has been proposed for your booking",
    "decline": "Update on your booking request",
    "cancel": "Your booking has been cancelled",
}


def _format_when(value, tz: ZoneInfo) -> str:
    if not value:
        return "No preferred time"
    return value.astimezone(tz).strftime("%A, %B %d, %Y at %I:%M %p %Z")


def _layout(title: str, body_html: str) -> str:
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <div style="background-color: #29c4a9; padding: 24px; text-align: center; border-radius: 10px 10px 0 0;">
                <h1 style="color: white; margin: 0; font-size: 24px;">{escape(title)}</h1>
            </div>
            <div style="background-color: #ffffff; padding: 24px; border: 1px solid #e0e0e0; border-top: none; border-radius: 0 0 10px 10px;">
                {body_html}
            </div>
        </body>
        </html>
        """


class EmailService:
    """Service for sending emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Create and return SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
            bcc: Optional[List[str]] = None
    ) -> bool:
        """
        Send an email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            plain_text: Plain text version (fallback for non-HTML clients)
            bcc: List of BCC email addresses

        Returns:
            bool: True if email sent successfully
        """
        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
            msg['To'] = to_email

            if plain_text:
                msg.attach(MIMEText(plain_text, 'plain'))
            msg.attach(MIMEText(html_content, 'html'))

            recipients = [to_email]
            if bcc:
                recipients.extend(bcc)

            server = EmailService._get_smtp_connection()
            server.sendmail(settings.EMAIL_FROM_ADDRESS, recipients, msg.as_string())
            server.quit()

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise

    @staticmethod
    def send_request_received_email(request, business_name: str, tz: ZoneInfo) -> bool:
        """Acknowledge a new request to the customer"""
        when = _format_when(request.preferred_start, tz)
        confirmed = request.status == "APPROVED"
        title = "Booking Confirmed" if confirmed else "Request Received"
        lead = (
            "Your booking is confirmed." if confirmed
            else f"{escape(business_name)} has received your request and will respond soon."
        )

        html_content = _layout(title, f"""
                <h2 style="color: #333; margin-top: 0;">Hi {escape(request.customer_name)}!</h2>
                <p style="font-size: 16px; color: #555;">{lead}</p>
                <p style="font-size: 16px; color: #555;"><strong>Requested time:</strong> {escape(when)}</p>
        """)
        plain_text = f"Hi {request.customer_name},\n\n{business_name}: {title}.\nRequested time: {when}\n"

        return EmailService.send_email(
            to_email=request.customer_email,
            subject=f"{title} - {business_name}",
            html_content=html_content,
            plain_text=plain_text,
        )

    @staticmethod
    def send_new_request_alert(request, business_name: str, to_email: str, tz: ZoneInfo) -> bool:
        """Tell the business about a new request"""
        when = _format_when(request.preferred_start, tz)
        contact = escape(request.customer_phone or "no phone given")

        html_content = _layout("New Booking Request", f"""
                <p style="font-size: 16px; color: #555;">
                    <strong>{escape(request.customer_name)}</strong>
                    ({escape(request.customer_email)}, {contact}) requested a booking.
                </p>
                <p style="font-size: 16px; color: #555;"><strong>Preferred time:</strong> {escape(when)}</p>
                <p style="font-size: 14px; color: #777;">{escape(request.message or "")}</p>
        """)
        plain_text = (
            f"New booking request from {request.customer_name} ({request.customer_email}).\n"
            f"Preferred time: {when}\n{request.message or ''}\n"
        )

        return EmailService.send_email(
            to_email=to_email,
            subject=f"New booking request - {request.customer_name}",
            html_content=html_content,
            plain_text=plain_text,
        )

    @staticmethod
    def send_status_email(request, action: str, business_name: str, tz: ZoneInfo) -> bool:
        """Tell the customer the business approved, proposed, declined or cancelled"""
        subject = STATUS_SUBJECTS[action]
        when = _format_when(request.proposed_start or request.preferred_start, tz)

        html_content = _layout(subject, f"""
                <h2 style="color: #333; margin-top: 0;">Hi {escape(request.customer_name)}!</h2>
                <p style="font-size: 16px; color: #555;">{escape(subject)} with {escape(business_name)}.</p>
                <p style="font-size: 16px; color: #555;"><strong>Time:</strong> {escape(when)}</p>
        """)
        plain_text = f"Hi {request.customer_name},\n\n{subject} with {business_name}.\nTime: {when}\n"

        return EmailService.send_email(
            to_email=request.customer_email,
            subject=f"{subject} - {business_name}",
            html_content=html_content,
            plain_text=plain_text,
        )
