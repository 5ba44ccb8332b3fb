"""Outgoing mail.

Messages are plain classes that know their subject and how to render
themselves; `Mailer` turns them into an EmailMessage and hands it to SMTP.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from html import escape
from typing import Optional

from aiolimiter import AsyncLimiter

from storefront.config import MailSettings
from storefront.models import Product
from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


class MailConfigurationError(Exception):
    """SMTP settings are missing something required to send"""


class Mailable:
    subject: str = ""

    def render_text(self) -> str:
        raise NotImplementedError

    def render_html(self) -> Optional[str]:
        return None


class PriceChangeNotification(Mailable):
    subject = "Product Price Change Notification"

    def __init__(self, product: Product, old_price: float, new_price: float) -> None:
        self.product = product
        self.old_price = old_price
        self.new_price = new_price

    def _lines(self) -> list[str]:
        return [
            f"Product ID: {self.product.id}",
            f"Old price: {self.old_price:.2f}",
            f"New price: {self.new_price:.2f}",
        ]

    def render_text(self) -> str:
        return (
            f"The price of {self.product.name} has changed.\n\n"
            + "\n".join(self._lines())
            + "\n"
        )

    def render_html(self) -> str:
        items = "".join(f"<li>{escape(line)}</li>" for line in self._lines())
        return (
            "<html><body>"
            f"<h3>The price of {escape(self.product.name)} has changed</h3>"
            f"<ul>{items}</ul>"
            "</body></html>"
        )


class Mailer:
    def __init__(self, settings: MailSettings) -> None:
        self.settings = settings
        self.limiter = AsyncLimiter(settings.rate_per_minute, 60)
        self.sent_count = 0

    def build_message(self, to: str, mailable: Mailable) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = mailable.subject
        msg["From"] = self.settings.from_address
        msg["To"] = to
        msg.set_content(mailable.render_text())
        if html := mailable.render_html():
            msg.add_alternative(html, subtype="html")
        return msg

    async def send(self, to: str, mailable: Mailable) -> None:
        """Deliver a message; SMTP errors propagate to the caller"""
        if not to:
            raise MailConfigurationError("No recipient address given")

        msg = self.build_message(to, mailable)

        async with self.limiter:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._deliver, msg)

        self.sent_count += 1
        logger.info(f"Email sent to {to} (subject={mailable.subject})")

    def _deliver(self, msg: EmailMessage) -> None:
        """Blocking SMTP exchange (runs in executor)"""
        s = self.settings
        context = ssl.create_default_context()

        if s.use_tls and s.port == 587:
            with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as smtp:
                smtp.ehlo()
                smtp.starttls(context=context)
                self._login(smtp)
                smtp.send_message(msg)
        elif s.use_tls:
            with smtplib.SMTP_SSL(s.host, s.port, context=context, timeout=s.timeout) as smtp:
                self._login(smtp)
                smtp.send_message(msg)
        else:
            # Local relays and test servers
            with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as smtp:
                self._login(smtp)
                smtp.send_message(msg)

    def _login(self, smtp: smtplib.SMTP) -> None:
        if self.settings.username and self.settings.password:
            smtp.login(self.settings.username, self.settings.password)
        elif self.settings.username or self.settings.password:
            raise MailConfigurationError("Set both MAIL_USERNAME and MAIL_PASSWORD")
