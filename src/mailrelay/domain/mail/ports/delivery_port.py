"""Delivery Channel Port - hand a composed message to a lower-level transport."""

from abc import ABC, abstractmethod
from email.message import EmailMessage


class DeliveryChannelPort(ABC):

    @abstractmethod
    async def deliver(self, message: EmailMessage) -> str:
        """Deliver message and return the delivery identifier.

        Raises:
            DeliveryError: If the channel rejects or fails to take the message.
                Implementations do not retry.
        """
        pass
