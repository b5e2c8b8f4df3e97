from .base import BaseClient
from .rest_record_store import RestRecordStore

__all__ = ["BaseClient", "RestRecordStore"]
