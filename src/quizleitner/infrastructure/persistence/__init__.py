# Infrastructure Persistence Package
from .file_storage import SnapshotFileStorage
from .schema import CURRENT_FORMAT_VERSION, decode_snapshot, encode_snapshot

__all__ = ["CURRENT_FORMAT_VERSION", "SnapshotFileStorage", "decode_snapshot", "encode_snapshot"]
