"""
Exceptions raised while generating attachment thumbnails.
"""

from typing import Optional


class ThumbnailError(Exception):
    """
    Base class for thumbnail generation failures.

    Attributes:
        attachment: Display name of the attachment being processed, if known
    """

    def __init__(self, message: str, attachment: Optional[str] = None):
        super().__init__(message)
        self.attachment = attachment


class InvalidAttachment(ThumbnailError):
    """Raised when an attachment has no usable path or url."""
    pass


class SourceResolutionError(ThumbnailError):
    """Raised when signing, fetching or locating the source bytes fails."""
    pass


class UnknownThumbnailSize(ThumbnailError):
    """Raised for a variant name missing from the thumbnail size table."""
    pass


class DerivationError(ThumbnailError):
    """Raised when resizing or encoding a variant fails."""
    pass


class PublishError(ThumbnailError):
    """Raised when writing a variant to the storage backend fails."""
    pass
