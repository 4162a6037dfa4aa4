import asyncio
import logging
import mimetypes
import secrets
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from app.exceptions import StorageError

logger = logging.getLogger(__name__)

ARTIFACT_PREFIX = "temp_image_"
DEFAULT_SUFFIX = ".jpg"


def artifact_suffix(content_type: str | None) -> str:
    if not content_type:
        return DEFAULT_SUFFIX
    guessed = mimetypes.guess_extension(content_type.split(";", 1)[0].strip())
    return guessed or DEFAULT_SUFFIX


class ArtifactStore:
    """Writes uploads to uniquely named temporary files and removes them again."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def _new_path(self, suffix: str) -> Path:
        name = f"{ARTIFACT_PREFIX}{time.time_ns()}_{secrets.token_hex(4)}{suffix}"
        return (self._directory / name).resolve()

    def _write(self, path: Path, buffer: bytes) -> None:
        # "x" refuses to reuse a path another request already owns
        f = open(path, "xb")
        try:
            with f:
                f.write(buffer)
        except OSError:
            self.release(path)
            raise

    async def acquire(self, buffer: bytes, content_type: str | None = None) -> Path:
        """Write `buffer` to a fresh path and return it.

        Raises:
            StorageError: if the file cannot be written.
        """
        path = self._new_path(artifact_suffix(content_type))
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(self._write, path, buffer)
        except OSError as e:
            logger.error("Could not write artifact %s: %s", path, e)
            raise StorageError(f"{type(e).__name__}: {e}") from e
        return path

    def release(self, path: Path) -> None:
        """Delete the artifact; already-missing files are ignored."""
        try:
            Path(path).unlink(missing_ok=True)
        except OSError:
            logger.exception("Could not delete artifact %s", path)

    @asynccontextmanager
    async def artifact(self, buffer: bytes, content_type: str | None = None) -> AsyncIterator[Path]:
        path = await self.acquire(buffer, content_type)
        try:
            yield path
        finally:
            await asyncio.to_thread(self.release, path)
