"""
Fingerprint-based write cache.

Remembers which fingerprint was last written to each output file, so that
repeated generation cycles only touch files whose content changed. One
cache belongs to one pipeline invocation (or one streaming session); it is
never persisted, so a fresh process always starts cold.
"""

from __future__ import annotations

import logging
from pathlib import Path

from . import fs
from .artifacts import Artifact

logger = logging.getLogger(__name__)


class WrittenFilesCache:
    """Tracks file path -> last written fingerprint.

    Attributes:
        writes: Number of files written through this cache
        skips: Number of writes skipped because the file was up to date
    """

    def __init__(self):
        self._fingerprints: dict[str, str] = {}
        self.writes = 0
        self.skips = 0

    def __contains__(self, file_path) -> bool:
        return str(file_path) in self._fingerprints

    def __len__(self) -> int:
        return len(self._fingerprints)

    def get(self, file_path) -> str | None:
        return self._fingerprints.get(str(file_path))

    def is_up_to_date(self, file_path, fingerprint: str | None) -> bool:
        return fingerprint is not None and self._fingerprints.get(str(file_path)) == fingerprint

    async def write(
        self,
        file_path: Path,
        content: str,
        fingerprint: str | None = None,
        rm_before_write: bool = False,
    ) -> bool:
        """Write a file unless it is known to be up to date.

        Without a fingerprint the file is always written.

        Args:
            file_path: Target file
            content: Full new content of the file
            fingerprint: Content fingerprint enabling skip-on-unchanged
            rm_before_write: Delete the file first (some watchers only notice delete + create)

        Returns:
            True if the file was written, False if the write was skipped

        Raises:
            RmError: If removing the old file fails
            WriteFileError: If writing fails (the cache is left unchanged)
        """
        if not rm_before_write and self.is_up_to_date(file_path, fingerprint):
            self.skips += 1
            logger.debug("Up to date: %s", file_path)
            return False

        if rm_before_write:
            await fs.rm(file_path, force=True)
        await fs.write_file(file_path, content)
        self.writes += 1
        logger.debug("Wrote %s", file_path)

        if fingerprint is not None:
            self._fingerprints[str(file_path)] = fingerprint
        return True

    async def write_artifact(self, artifact: Artifact) -> bool:
        return await self.write(
            artifact.file_path,
            artifact.content,
            fingerprint=artifact.fingerprint,
            rm_before_write=artifact.rm_before_write,
        )
