from .filesystem_record_store import FilesystemRecordStore
from .star_index import StarIndex

__all__ = ["FilesystemRecordStore", "StarIndex"]
