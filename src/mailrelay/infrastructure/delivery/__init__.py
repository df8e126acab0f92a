from .smtp_delivery import SMTPDeliveryChannel

__all__ = ["SMTPDeliveryChannel"]
