"""
Snapshot File Storage: infrastructure adapter for a single snapshot file.

Implements SnapshotStorage with write-to-temp then atomic replace, so a
failed save never leaves a truncated file behind.
"""

import contextlib
import logging
import os
from datetime import datetime
from pathlib import Path

from quizleitner.domain.models import StoreSnapshot
from quizleitner.domain.ports import SnapshotStorage

from .schema import decode_snapshot, encode_snapshot

logger = logging.getLogger(__name__)

TMP_SUFFIX = ".tmp"


class SnapshotFileStorage(SnapshotStorage):
    """
    Stores the snapshot as a versioned JSON file.

    Reads accept the current and the legacy shape; writes always use the
    current one.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + TMP_SUFFIX)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self, now: datetime | None = None) -> StoreSnapshot | None:
        if not self.path.exists():
            return None

        data = self.path.read_bytes()
        snapshot = decode_snapshot(data, now=now)
        logger.debug(f"Read {len(snapshot.cards)} cards from {self.path}")
        return snapshot

    def write(self, snapshot: StoreSnapshot) -> None:
        data = encode_snapshot(snapshot)
        tmp = self.tmp_path

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {len(snapshot.cards)} cards to {self.path}")

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
        with contextlib.suppress(OSError):
            self.tmp_path.unlink(missing_ok=True)
