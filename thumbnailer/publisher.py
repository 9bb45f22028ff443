"""
StoragePublisher - Writes derived thumbnails through a storage backend.
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import BinaryIO, Dict, List, Optional, Protocol, Sequence

from .deriver import DerivedThumbnail
from .errors import PublishError


class StorageBackend(Protocol):
    """Anything that can write a byte stream to a destination path."""

    def write_stream(self, path: str, stream: BinaryIO) -> None:
        ...


class StoragePublisher:
    """
    Publishes thumbnails to a storage backend.

    The backend is shared read-only across attachments. Destination paths
    are unique per attachment and variant, so writes never overlap.
    """

    def __init__(
        self,
        storage: StorageBackend,
        max_workers: int = 3,
        logger: Optional[logging.Logger] = None
    ):
        self.storage = storage
        self.max_workers = max_workers
        self.logger = logger or logging.getLogger(__name__)

    def publish(self, path: str, data: bytes) -> None:
        """
        Write one buffer to path, replacing anything already there.

        Raises:
            PublishError: If the backend write fails
        """
        try:
            self.storage.write_stream(path, io.BytesIO(data))
        except Exception as e:
            raise PublishError(f"Failed to write {path}: {e}", attachment=path) from e

    def publish_all(self, thumbnails: Sequence[DerivedThumbnail]) -> Dict[str, str]:
        """
        Write all variants of one attachment.

        If any write fails, variants already written are removed (when the
        backend supports delete_object) and PublishError is raised.

        Returns:
            Dict mapping variant name to destination path
        """
        written: List[str] = []
        failures: List[PublishError] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_thumb = {
                executor.submit(self.publish, thumb.path, thumb.data): thumb
                for thumb in thumbnails
            }
            for future in as_completed(future_to_thumb):
                thumb = future_to_thumb[future]
                try:
                    future.result()
                    written.append(thumb.path)
                except PublishError as e:
                    failures.append(e)

        if failures:
            self._rollback(written)
            raise failures[0]

        return {thumb.name: thumb.path for thumb in thumbnails}

    def _rollback(self, paths: List[str]) -> None:
        delete = getattr(self.storage, 'delete_object', None)
        if delete is None:
            if paths:
                self.logger.warning(f"Storage cannot delete; leaving partial thumbnails: {paths}")
            return

        for path in paths:
            try:
                delete(path)
                self.logger.debug(f"Rolled back: {path}")
            except Exception as e:
                self.logger.warning(f"Could not remove partial thumbnail {path}: {e}")
