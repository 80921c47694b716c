"""
Report Mailer
Delivers audit reports by email through an SMTP relay
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional

from exceptions import DeliveryError

logger = logging.getLogger(__name__)


@dataclass
class MailerConfig:
    """SMTP relay configuration"""
    host: str = 'localhost'
    port: int = 25
    sender: str = 'security-audit@localhost'
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = False
    timeout: int = 30


class ReportMailer:
    """Fire-and-forget report sink; raises DeliveryError when the relay refuses"""

    def __init__(self, config: MailerConfig = None):
        self.config = config or MailerConfig()

    def deliver(self, recipient: str, subject: str, body: str) -> None:
        msg = MIMEText(body, 'plain', 'utf-8')
        msg['Subject'] = subject
        msg['From'] = self.config.sender
        msg['To'] = recipient

        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as server:
                if self.config.use_tls:
                    server.starttls()
                if self.config.username and self.config.password:
                    server.login(self.config.username, self.config.password)
                server.sendmail(self.config.sender, [recipient], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Email send to {recipient} failed: {str(e)[:200]}") from e

        logger.info(f"Report emailed to {recipient}")
