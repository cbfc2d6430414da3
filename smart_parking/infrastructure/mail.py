# File: smart_parking/infrastructure/mail.py
"""SMTP mail delivery"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from ..domain.errors import MailDeliveryError


class SmtpMailSender:
    """MailSender implementation using smtplib"""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self._logger = logging.getLogger(self.__class__.__name__)

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send_mail(self, to: str, subject: str, body: str) -> None:
        message = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            self._logger.error(f"Error sending mail to {to}: {e}")
            raise MailDeliveryError(str(e)) from e

        self._logger.debug(f"Mail '{subject}' sent to {to}")
