from datetime import date, datetime
from typing import NamedTuple
from taxitao.core.config import Settings

settings = Settings()

DRIVER_EMAIL_TYPES = (
    "payment_verified",
    "payment_rejected",
    "subscription_expiring",
    "subscription_expired",
    "admin_message",
)

BASE_STYLES = "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;"
HEADER_STYLES = "background: linear-gradient(135deg, #16a34a 0%, #15803d 100%); color: white; padding: 30px; text-align: center; border-radius: 12px 12px 0 0;"
CONTENT_STYLES = "background: #ffffff; padding: 30px; border: 1px solid #e5e7eb; border-top: none;"
FOOTER_STYLES = "background: #f9fafb; padding: 20px; text-align: center; font-size: 12px; color: #6b7280; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 12px 12px;"
BUTTON_STYLES = "display: inline-block; background: #16a34a; color: white; padding: 12px 24px; text-decoration: none; border-radius: 8px; font-weight: 600; margin-top: 20px;"


class EmailTemplate(NamedTuple):
    subject: str
    html: str


def should_send_email(type: str) -> bool:
    return type in DRIVER_EMAIL_TYPES


def _long_date(value: date | datetime | None, fallback: str) -> str:
    if not value:
        return fallback
    return f"{value.strftime('%A')}, {value.day} {value.strftime('%B %Y')}"


def _panel(background: str, border: str, body: str) -> str:
    return f"""
        <div style="background: {background}; border: 1px solid {border}; border-radius: 8px; padding: 15px; margin: 20px 0;">
            {body}
        </div>
    """


def wrap_template(title: str, content: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="{BASE_STYLES}">
        <div style="{HEADER_STYLES}">
            <h1 style="margin: 0; font-size: 24px;">🚖 TaxiTao</h1>
            <p style="margin: 10px 0 0 0; opacity: 0.9;">{title}</p>
        </div>
        <div style="{CONTENT_STYLES}">
            {content}
        </div>
        <div style="{FOOTER_STYLES}">
            <p style="margin: 0;">© {datetime.now().year} TaxiTao. All rights reserved.</p>
            <p style="margin: 5px 0 0 0;">Nairobi, Kenya</p>
        </div>
    </body>
    </html>
    """


def get_driver_email_template(
    type: str,
    driver_name: str,
    expiry_date: date | datetime | None = None,
    rejection_reason: str | None = None,
    days_remaining: int | None = None,
    custom_message: str | None = None
) -> EmailTemplate | None:
    dashboard = f"{settings.FRONTEND_URL}/driver/dashboard"
    greeting = f"<p>Hello <strong>{driver_name}</strong>,</p>"

    match type:
        case "payment_verified":
            valid_until = _long_date(expiry_date, "N/A")
            panel = _panel("#f0fdf4", "#bbf7d0", f"""
                <p style="margin: 0;"><strong>Subscription Valid Until:</strong></p>
                <p style="margin: 5px 0 0 0; font-size: 18px; color: #16a34a; font-weight: bold;">{valid_until}</p>
            """)
            return EmailTemplate(
                "✅ Subscription Activated - TaxiTao",
                wrap_template("Payment Verified", f"""
                    <h2 style="color: #16a34a; margin-top: 0;">Payment Confirmed!</h2>
                    {greeting}
                    <p>Great news! Your payment has been verified and your subscription is now <strong style="color: #16a34a;">ACTIVE</strong>.</p>
                    {panel}
                    <p>You are now visible to customers and can receive ride requests.</p>
                    <a href="{dashboard}" style="{BUTTON_STYLES}">Go to Dashboard</a>
                """),
            )
        case "payment_rejected":
            reason = rejection_reason or "No reason provided"
            panel = _panel("#fef2f2", "#fecaca", f"""
                <p style="margin: 0;"><strong>Reason:</strong></p>
                <p style="margin: 5px 0 0 0; color: #dc2626;">{reason}</p>
            """)
            return EmailTemplate(
                "❌ Payment Rejected - TaxiTao",
                wrap_template("Payment Issue", f"""
                    <h2 style="color: #dc2626; margin-top: 0;">Payment Rejected</h2>
                    {greeting}
                    <p>Unfortunately, your recent payment could not be verified.</p>
                    {panel}
                    <p>Please verify your payment details and try again, or contact support if you believe this is an error.</p>
                    <a href="{dashboard}" style="{BUTTON_STYLES}">Try Again</a>
                """),
            )
        case "subscription_expiring":
            expires = _long_date(expiry_date, "Soon")
            panel = _panel("#fffbeb", "#fde68a", f"""
                <p style="margin: 0;"><strong>Expiry Date:</strong></p>
                <p style="margin: 5px 0 0 0; font-size: 18px; color: #f59e0b; font-weight: bold;">{expires}</p>
            """)
            return EmailTemplate(
                "⚠️ Subscription Expiring Soon - TaxiTao",
                wrap_template("Subscription Reminder", f"""
                    <h2 style="color: #f59e0b; margin-top: 0;">Subscription Expiring Soon</h2>
                    {greeting}
                    <p>Your TaxiTao subscription will expire in <strong>{days_remaining or 3} days</strong>.</p>
                    {panel}
                    <p>Renew now to continue receiving ride requests and stay visible to customers.</p>
                    <a href="{dashboard}" style="{BUTTON_STYLES}">Renew Subscription</a>
                """),
            )
        case "subscription_expired":
            panel = _panel(
                "#fef2f2",
                "#fecaca",
                '<p style="margin: 0;">To continue using TaxiTao, please renew your subscription.</p>'
            )
            return EmailTemplate(
                "🚫 Subscription Expired - TaxiTao",
                wrap_template("Subscription Expired", f"""
                    <h2 style="color: #dc2626; margin-top: 0;">Subscription Expired</h2>
                    {greeting}
                    <p>Your TaxiTao subscription has expired. You are no longer visible to customers.</p>
                    {panel}
                    <a href="{dashboard}" style="{BUTTON_STYLES}">Renew Now</a>
                """),
            )
        case "admin_message":
            text = custom_message or "You have a new message from TaxiTao admin."
            panel = _panel("#eff6ff", "#bfdbfe", f'<p style="margin: 0;">{text}</p>')
            return EmailTemplate(
                "📢 Message from TaxiTao",
                wrap_template("Admin Message", f"""
                    <h2 style="color: #2563eb; margin-top: 0;">Message from TaxiTao</h2>
                    {greeting}
                    {panel}
                    <a href="{dashboard}" style="{BUTTON_STYLES}">View Dashboard</a>
                """),
            )
        case _:
            return None


def get_confirmation_email_template(confirmation_url: str) -> EmailTemplate:
    return EmailTemplate(
        "Confirm your TaxiTao account",
        wrap_template("Confirm Your Email", f"""
            <h2 style="color: #16a34a; margin-top: 0;">Welcome to TaxiTao!</h2>
            <p>Thanks for signing up. Please confirm your email address to start booking rides.</p>
            <a href="{confirmation_url}" style="{BUTTON_STYLES}">Confirm Email</a>
            <p style="font-size: 12px; color: #6b7280; margin-top: 20px;">If the button doesn't work, copy this link into your browser:<br>{confirmation_url}</p>
            <p style="font-size: 12px; color: #6b7280;">This link expires in 24 hours.</p>
        """),
    )


def get_password_reset_email_template(reset_url: str) -> EmailTemplate:
    return EmailTemplate(
        "Reset your TaxiTao password",
        wrap_template("Password Reset", f"""
            <h2 style="color: #16a34a; margin-top: 0;">Reset your password</h2>
            <p>We received a request to reset the password for your TaxiTao account.</p>
            <a href="{reset_url}" style="{BUTTON_STYLES}">Reset Password</a>
            <p style="font-size: 12px; color: #6b7280; margin-top: 20px;">If you didn't ask for this, you can ignore this email. The link expires in 1 hour.</p>
        """),
    )
