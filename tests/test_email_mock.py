from unittest.mock import patch, MagicMock

from app.core.config import settings
from app.services.email_service import send_user_welcome_email, send_password_reset_email


def smtp_configured():
    return patch.multiple(
        settings,
        SMTP_HOST="smtp.mailer.local",
        SMTP_PORT=2525,
        SMTP_USER="mailer",
        SMTP_PASSWORD="secret",
    )


@patch("app.services.email_service.smtplib.SMTP")
def test_send_welcome_email(mock_smtp):
    mock_server_instance = MagicMock()
    mock_smtp.return_value.__enter__.return_value = mock_server_instance

    user_data = {
        "full_name": "Dr. Priya Raman",
        "email": "priya@srmist.edu.in",
        "role": "faculty",
        "college": "SRMIST RAMAPURAM",
        "institute": "Engineering and Technology",
        "department": "Civil",
    }

    with smtp_configured():
        send_user_welcome_email(user_data)

    mock_smtp.assert_called_with("smtp.mailer.local", 2525)
    mock_server_instance.starttls.assert_called()
    mock_server_instance.login.assert_called_with("mailer", "secret")
    mock_server_instance.sendmail.assert_called()

    recipient = mock_server_instance.sendmail.call_args[0][1]
    assert recipient == "priya@srmist.edu.in"


@patch("app.services.email_service.smtplib.SMTP")
def test_send_password_reset_email(mock_smtp):
    mock_server_instance = MagicMock()
    mock_smtp.return_value.__enter__.return_value = mock_server_instance

    with smtp_configured():
        send_password_reset_email("reset@srmist.edu.in", "482913")

    mock_server_instance.sendmail.assert_called()
    recipient = mock_server_instance.sendmail.call_args[0][1]
    assert recipient == "reset@srmist.edu.in"


@patch("app.services.email_service.smtplib.SMTP")
def test_missing_smtp_host_skips_sending(mock_smtp):
    with patch.object(settings, "SMTP_HOST", None):
        send_password_reset_email("reset@srmist.edu.in", "482913")
    mock_smtp.assert_not_called()


@patch("app.services.email_service.smtplib.SMTP")
def test_smtp_failure_is_logged_not_raised(mock_smtp):
    mock_smtp.side_effect = OSError("connection refused")

    with smtp_configured():
        send_password_reset_email("reset@srmist.edu.in", "482913")

    mock_smtp.assert_called_once()
