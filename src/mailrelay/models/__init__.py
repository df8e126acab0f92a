from .base import Base
from .mail_user import MailUser

__all__ = ["Base", "MailUser"]
