import smtplib
import os
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger
from app.core.config import settings

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'templates', 'email')

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(['html']),
)

# Helper to get template
def get_template(template_name):
    return _env.get_template(template_name)

# Helper to send email via SMTP
def send_email_via_smtp(to_email, subject, html_content):
    # Only HOST is required. User/Pass are optional (for Mailpit)
    if not settings.SMTP_HOST:
        logger.warning(f"SMTP host not configured. Skipping email to {to_email}.")
        return

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.ehlo()

            # TLS on submission ports; Mailpit (1025) runs plain
            if settings.SMTP_PORT in [587, 2525]:
                server.starttls()
                server.ehlo()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(settings.EMAILS_FROM_EMAIL, to_email, msg.as_string())

        logger.info(f"Email sent to {to_email}")
    except Exception:
        logger.exception(f"Failed to send email to {to_email}")


# ---------------------------------------------------------
# 1. WELCOME EMAIL (new account)
# ---------------------------------------------------------
def send_user_welcome_email(user_data: dict):
    try:
        role = user_data.get("role") or ""
        context = {
            "name": user_data.get("full_name"),
            "email": user_data.get("email"),
            "role_label": role.replace("_", " ").title(),
            "college": user_data.get("college"),
            "institute": user_data.get("institute"),
            "department": user_data.get("department"),
            "login_url": f"{settings.FRONTEND_URL}/login",
        }
        html_content = get_template('user_welcome.html').render(context)
        send_email_via_smtp(user_data.get("email"), "Welcome to the SRM Research Portal", html_content)
    except Exception:
        logger.exception("Error preparing welcome email")


# ---------------------------------------------------------
# 2. PASSWORD RESET OTP
# ---------------------------------------------------------
def send_password_reset_email(email: str, otp: str):
    try:
        context = {
            "email": email,
            "otp": otp,
            "expires_minutes": settings.OTP_EXPIRE_MINUTES,
            "max_attempts": settings.OTP_MAX_ATTEMPTS,
        }
        html_content = get_template('password_reset.html').render(context)
        send_email_via_smtp(email, "Your password reset code", html_content)
    except Exception:
        logger.exception("Error preparing password reset email")
