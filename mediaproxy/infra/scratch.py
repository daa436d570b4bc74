import logging
import os
from pathlib import Path

import aiofiles.os

from mediaproxy.config.settings import config
from mediaproxy.core.errors import ignore_errors

logger = logging.getLogger(__name__)


def get_downloads_dir() -> Path:
    """Scratch download directory (FastAPI dependency, overridden in tests)"""
    return Path(config.storage.downloads_dir)


async def purge_directory(directory: Path) -> int:
    """
    Delete every regular file directly inside ``directory``.

    Best effort: a listing failure or a single failed deletion is logged and
    skipped. Returns the number of files removed.
    """
    removed = 0
    names: list = []
    with ignore_errors(f"listing {directory}", OSError):
        names = await aiofiles.os.listdir(directory)

    for name in names:
        path = os.path.join(directory, name)
        with ignore_errors(f"removing {path}", OSError):
            if await aiofiles.os.path.isfile(path):
                await aiofiles.os.remove(path)
                removed += 1

    if removed:
        logger.info(f"Purged {removed} file(s) from {directory}")
    return removed


class ScratchPurge:
    """
    One-shot purge of the scratch directory.

    Both "body finished" and "response closed" call ``finalize``; only the
    first call purges. The flag is set before the first await, so two callers
    on the event loop never both get through.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    async def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        await purge_directory(self.directory)
