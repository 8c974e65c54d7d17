"""Storage abstractions for taskmux."""

from .artifacts import ArtifactStore, SESSION_PREFIX
from .codec import decode_record, encode_fields, encode_record, read_status_file, write_status_file
from .models import StatusRecord, StoredStatus

__all__ = [
    "ArtifactStore",
    "SESSION_PREFIX",
    "StatusRecord",
    "StoredStatus",
    "decode_record",
    "encode_fields",
    "encode_record",
    "read_status_file",
    "write_status_file",
]
