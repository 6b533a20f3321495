"""Storage backends for users, sessions and posts."""
from .base import PostRecord, RecordStore, ReplyRecord, SessionRecord, UserRecord
from .memory import MemoryRecordStore
from .sql import SqlRecordStore, get_record_store

__all__ = [
    "PostRecord",
    "RecordStore",
    "ReplyRecord",
    "SessionRecord",
    "UserRecord",
    "MemoryRecordStore",
    "SqlRecordStore",
    "get_record_store",
]
