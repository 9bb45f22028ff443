"""
JobConfig - Settings for the thumbnail job, loaded from the environment.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from .thumbnail_spec import DEFAULT_THUMBNAIL_ROOT


DEFAULT_S3_MARKER = '.amazonaws.com/'


@dataclass
class JobConfig:
    """
    Thumbnail job settings.

    Attributes:
        signing_key: Secret for signed download URLs (None disables checks)
        base_url: Base of signed download URLs
        time_tolerance: Seconds a signed URL stays valid (None for no limit)
        fetch_timeout: Seconds allowed for connecting to and reading a remote source
        variant_timeout: Seconds allowed for deriving all variants of one attachment
        quality: JPEG quality of thumbnails
        max_workers: Variants derived/published concurrently per attachment
        s3_marker: Substring identifying an object-storage URL
        thumbnail_root: Destination root for thumbnails
    """
    signing_key: Optional[str] = None
    base_url: str = 'http://localhost:8080/download'
    time_tolerance: Optional[int] = 600
    fetch_timeout: float = 30.0
    variant_timeout: Optional[float] = 120.0
    quality: int = 85
    max_workers: int = 3
    s3_marker: str = DEFAULT_S3_MARKER
    thumbnail_root: str = DEFAULT_THUMBNAIL_ROOT

    @classmethod
    def from_env(cls) -> 'JobConfig':
        """Load configuration from THUMBNAILER_* environment variables."""
        defaults = cls()
        tolerance = os.getenv('THUMBNAILER_TIME_TOLERANCE')
        variant_timeout = os.getenv('THUMBNAILER_VARIANT_TIMEOUT')
        return cls(
            signing_key=os.getenv('THUMBNAILER_SIGNING_KEY') or None,
            base_url=os.getenv('THUMBNAILER_BASE_URL', defaults.base_url),
            time_tolerance=_optional_int(tolerance, defaults.time_tolerance),
            fetch_timeout=float(os.getenv('THUMBNAILER_FETCH_TIMEOUT', defaults.fetch_timeout)),
            variant_timeout=_optional_float(variant_timeout, defaults.variant_timeout),
            quality=int(os.getenv('THUMBNAILER_QUALITY', defaults.quality)),
            max_workers=int(os.getenv('THUMBNAILER_MAX_WORKERS', defaults.max_workers)),
            s3_marker=os.getenv('THUMBNAILER_S3_MARKER', defaults.s3_marker),
            thumbnail_root=os.getenv('THUMBNAILER_THUMBNAIL_ROOT', defaults.thumbnail_root),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty if valid)."""
        errors = []
        if not 1 <= self.quality <= 95:
            errors.append(f"Quality must be between 1 and 95, got {self.quality}")
        if self.max_workers < 1:
            errors.append(f"max_workers must be at least 1, got {self.max_workers}")
        if self.fetch_timeout <= 0:
            errors.append(f"fetch_timeout must be positive, got {self.fetch_timeout}")
        if self.variant_timeout is not None and self.variant_timeout <= 0:
            errors.append(f"variant_timeout must be positive, got {self.variant_timeout}")
        if not self.s3_marker:
            errors.append("s3_marker must not be empty")
        if not self.thumbnail_root.strip('/'):
            errors.append("thumbnail_root must not be empty")
        return errors


def _optional_int(value: Optional[str], default: Optional[int]) -> Optional[int]:
    """Parse an int; an empty string or 'none' disables the setting."""
    if value is None:
        return default
    if value.strip().lower() in ('', 'none'):
        return None
    return int(value)


def _optional_float(value: Optional[str], default: Optional[float]) -> Optional[float]:
    if value is None:
        return default
    if value.strip().lower() in ('', 'none'):
        return None
    return float(value)
