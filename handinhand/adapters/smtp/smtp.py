"""
SMTP notifier adapter - Implements Notifier protocol over smtplib.

Every connection carries a socket timeout so a stalled mail server fails
the request instead of hanging it; failures surface as
NotificationDeliveryFailed, letting the domain roll back the pending
registration.
"""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from handinhand.domain.exceptions import NotificationDeliveryFailed

logger = logging.getLogger(__name__)


def wrap_body_html(plain_body: str) -> str:
    """Wrap a plain-text body in minimal HTML."""
    body_escaped = html.escape(plain_body).replace("\n", "<br>\n")
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; color: #333; max-width: 600px;">
<div>{body_escaped}</div>
</body>
</html>"""


class SmtpNotifier:
    """Implements Notifier protocol via an SMTP relay (STARTTLS by default)."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: str = "",
        password: str = "",
        timeout: float = 10.0,
        use_tls: bool = True,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._user = user
        self._password = password
        self._timeout = timeout
        self._use_tls = use_tls

    def build_message(self, to: str, subject: str, body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.attach(MIMEText(body, "plain", "utf-8"))
        msg.attach(MIMEText(wrap_body_html(body), "html", "utf-8"))
        return msg

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a message through the configured relay.

        Raises:
            NotificationDeliveryFailed: On any SMTP or socket error
        """
        msg = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_tls:
                    server.starttls()
                if self._user:
                    server.login(self._user, self._password)
                server.sendmail(self._sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s via %s:%s: %s", to, self._host, self._port, e)
            raise NotificationDeliveryFailed() from e
        logger.info("Email sent to %s: %s", to, subject)
