"""
AttachmentRef - Input descriptor for an uploaded file, and the resolved
byte sources produced from it.
"""

import io
import os
from dataclasses import dataclass, asdict
from typing import BinaryIO, Optional, Union

from .errors import InvalidAttachment


@dataclass(frozen=True)
class AttachmentRef:
    """
    Reference to an uploaded file as delivered in a job batch.

    Attributes:
        mimetype: Mimetype reported at upload time
        path: Relative storage path (e.g. 'download/a/b.png')
        url: Absolute URL, possibly an object-storage URL
        title: Original filename, used in log lines only
        size: Size in bytes, used in log lines only
    """
    mimetype: str
    path: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    size: Optional[int] = None

    @property
    def is_image(self) -> bool:
        return self.mimetype.startswith('image/')

    @property
    def display_name(self) -> str:
        """Name used in diagnostics: the path, else the url."""
        return self.path or self.url or '<unknown>'

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> 'AttachmentRef':
        """
        Create from a batch entry, ignoring keys this job does not use.

        Raises:
            InvalidAttachment: If data is not a mapping or has no mimetype
        """
        if not isinstance(data, dict):
            raise InvalidAttachment(f"Attachment entry is not an object: {data!r}")

        mimetype = data.get('mimetype')
        if not isinstance(mimetype, str):
            raise InvalidAttachment(
                "Attachment entry has no mimetype",
                attachment=data.get('path') or data.get('url'),
            )

        return cls(
            mimetype=mimetype,
            path=data.get('path') or None,
            url=data.get('url') or None,
            title=data.get('title'),
            size=data.get('size'),
        )


@dataclass(frozen=True)
class LocalFile:
    """
    Source bytes materialized as a file on the local filesystem.

    Attributes:
        relative_path: Path used to build thumbnail destinations
        path: Local filesystem path of the original
        temporary: True if the file should be removed once processed
    """
    relative_path: str
    path: str
    temporary: bool = False

    def open(self) -> BinaryIO:
        return open(self.path, 'rb')

    def cleanup(self) -> None:
        if self.temporary and os.path.exists(self.path):
            os.remove(self.path)


@dataclass(frozen=True)
class InMemory:
    """
    Source bytes fetched into memory.

    Attributes:
        relative_path: Path used to build thumbnail destinations
        data: Original image bytes
    """
    relative_path: str
    data: bytes

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)

    def cleanup(self) -> None:
        pass


ResolvedSource = Union[LocalFile, InMemory]
