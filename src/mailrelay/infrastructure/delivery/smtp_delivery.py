"""SMTP Delivery Channel - DeliveryChannelPort using aiosmtplib.

Hands composed messages to a downstream SMTP server. Failures are reported
as DeliveryError carrying the SMTP reply code when there is one; nothing is
retried here.
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from ...domain.mail.errors import DeliveryError
from ...domain.mail.ports.delivery_port import DeliveryChannelPort

logger = logging.getLogger(__name__)


class SMTPDeliveryChannel(DeliveryChannelPort):
    """Deliver messages through a downstream SMTP server."""

    def __init__(
        self,
        hostname: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        timeout: float = 60.0,
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def deliver(self, message: EmailMessage) -> str:
        delivery_id = str(message.get("Message-ID") or "")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.use_tls,
                timeout=self.timeout,
            )
        except aiosmtplib.SMTPException as e:
            smtp_code = getattr(e, "code", None)
            logger.error(
                f"Delivery failed: host={self.hostname}:{self.port}, "
                f"to={message.get('To')}, code={smtp_code}, error={e}"
            )
            raise DeliveryError(str(e), smtp_code=smtp_code) from e
        except (asyncio.TimeoutError, OSError) as e:
            logger.error(f"Delivery channel unreachable: host={self.hostname}:{self.port}, error={e}")
            raise DeliveryError(f"Delivery channel unreachable: {e}") from e

        logger.info(f"Delivered message: id={delivery_id}, to={message.get('To')}")
        return delivery_id
