"""
LocalClient - Local filesystem storage for uploads and thumbnails.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from typing import BinaryIO, List, Optional


@dataclass
class LocalConfig:
    """
    Local storage settings.

    Attributes:
        root_path: Base directory (e.g. /mnt/uploads)
        prefix: Subdirectory under root_path holding all files
    """
    root_path: str
    prefix: str = ''

    @property
    def base_dir(self) -> str:
        return os.path.abspath(os.path.join(self.root_path, self.prefix))

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty if valid)."""
        errors = []
        if not self.root_path:
            errors.append("Local root path is not set")
        elif not os.path.isdir(self.root_path):
            errors.append(f"Local root path does not exist: {self.root_path}")
        return errors


class LocalClient:
    """
    Filesystem counterpart to S3Client.

    Resolves upload paths to local files for reading, and writes
    thumbnails through write_stream().
    """

    chunk_size = 64 * 1024

    def __init__(self, config: LocalConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def full_path(self, rel: str) -> str:
        """
        Map a relative path to an absolute path under the base directory.

        Raises:
            ValueError: If the path resolves outside the base directory
        """
        base = self.config.base_dir
        full = os.path.abspath(os.path.join(base, rel.lstrip('/')))
        if os.path.commonpath([base, full]) != base:
            raise ValueError(f"Path escapes storage root: {rel}")
        return full

    def get_file(self, path: str) -> dict:
        """
        Locate a stored file for reading.

        Args:
            path: Relative path of the stored file

        Returns:
            Dict with 'path', the local filesystem path

        Raises:
            FileNotFoundError: If no such file is stored
        """
        full = self.full_path(path)
        if not os.path.isfile(full):
            raise FileNotFoundError(f"No stored file at {path}")
        return {'path': full}

    def write_stream(self, rel: str, stream: BinaryIO) -> None:
        """Write a stream to a file, creating parent directories and replacing any existing file."""
        full = self.full_path(rel)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        self.logger.debug(f"Writing: {full}")
        with open(full, 'wb') as f:
            shutil.copyfileobj(stream, f, self.chunk_size)

    def delete_object(self, rel: str) -> None:
        full = self.full_path(rel)
        if os.path.exists(full):
            os.remove(full)
