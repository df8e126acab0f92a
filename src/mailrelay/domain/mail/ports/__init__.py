from .credential_store_port import CredentialRecord, CredentialStorePort
from .delivery_port import DeliveryChannelPort
from .record_store_port import RecordStorePort

__all__ = [
    "CredentialRecord",
    "CredentialStorePort",
    "DeliveryChannelPort",
    "RecordStorePort",
]
