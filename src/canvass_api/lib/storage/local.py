"""Local filesystem ObjectStore, used by the CLI to import files from disk."""

from pathlib import Path

import aiofiles

from canvass_api.lib.storage.storage import ObjectNotAccessibleError


class LocalFileStore:
    """ObjectStore reading and writing keys as paths under a base directory.

    Args:
        base_dir: Directory keys are resolved against.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir).resolve()

    def _path_for(self, key: str) -> Path:
        path = (self._base_dir / key).resolve()
        if not path.is_relative_to(self._base_dir):
            msg = f"Key escapes the storage directory: {key}"
            raise ValueError(msg)
        return path

    async def get(self, key: str) -> bytes:
        """Read the file stored under ``key``.

        Raises:
            ObjectNotAccessibleError: If the file does not exist.
        """
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectNotAccessibleError(str(self._base_dir), key, "NoSuchKey")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Write ``data`` to the file for ``key``, creating parent directories."""
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

    async def ensure_bucket(self) -> None:
        """Raise ObjectNotAccessibleError when the base directory is gone."""
        if not self._base_dir.is_dir():
            raise ObjectNotAccessibleError(str(self._base_dir), None, "NoSuchBucket")
