"""Working directory for received originals and their blurred derivatives."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .errors import StorageError


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
FILTERED_PREFIX = "blurred_"


class Workspace:
    """
    Originals are named after the second they arrived; filtered images reuse
    that name behind a prefix. Two jobs within the same second overwrite each other.
    """

    def __init__(self, root: Path, clock: Callable[[], datetime] = datetime.now):
        self.root = Path(root)
        self._clock = clock

    def ensure(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create working directory {self.root}: {exc}") from exc

    def _write(self, path: Path, data: bytes) -> Path:
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"cannot write {path}: {exc}") from exc
        logger.debug("Wrote %s (%d bytes)", path, len(data))
        return path

    def save_original(self, data: bytes) -> Path:
        self.ensure()
        name = self._clock().strftime(TIMESTAMP_FORMAT) + ".png"
        return self._write(self.root / name, data)

    def save_filtered(self, original: Path, data: bytes) -> Path:
        return self._write(self.root / (FILTERED_PREFIX + Path(original).name), data)
