"""
Async writer for generated configuration files.
"""

import os
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os

from ..exceptions import FileSystemError
from .logging import get_logger

logger = get_logger(__name__)


class ConfigWriter:
    """Writes rendered configuration to disk, creating parent directories."""

    async def write(self, path: Union[str, Path], content: str) -> Path:
        """Write content to path.

        Raises:
            FileSystemError: If the directory or file cannot be written
        """
        path = Path(path).expanduser()

        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, 'w', encoding='utf-8') as f:
                await f.write(content)
        except OSError as e:
            raise FileSystemError("write", str(path), e.strerror or str(e), cause=e)

        logger.info(f"Wrote configuration file: {path}", extra={'path': str(path), 'bytes': len(content)})
        return path

    async def ensure_directory(self, path: Union[str, Path]) -> Path:
        """Create a directory tree if it does not exist yet."""
        path = Path(path).expanduser()
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise FileSystemError("create directory", str(path), e.strerror or str(e), cause=e)
        return path

    async def remove(self, path: Union[str, Path]) -> bool:
        """Remove a file written earlier.

        Returns:
            True if a file was removed, False if it was already gone
        """
        path = Path(path).expanduser()
        if not os.path.exists(path):
            return False

        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            raise FileSystemError("remove", str(path), e.strerror or str(e), cause=e)

        logger.info(f"Removed configuration file: {path}")
        return True
