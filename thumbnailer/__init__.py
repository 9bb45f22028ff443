"""
Attachment Thumbnail Generation

For each image attachment in a job batch:
    1. Resolve: locate the original (stored path, object-storage URL or remote URL)
       and acquire its bytes once
    2. Derive: render card_cover (512px), small (128px) and tiny (64px) JPEGs
    3. Publish: write them to uploads/thumbnails/<relative path>/<variant>.jpg

Supports both S3 and local filesystem storage.
"""

__version__ = "1.0.0"

from .errors import (
    ThumbnailError,
    InvalidAttachment,
    SourceResolutionError,
    UnknownThumbnailSize,
    DerivationError,
    PublishError,
)
from .attachment import AttachmentRef, LocalFile, InMemory, ResolvedSource
from .thumbnail_spec import ThumbnailSpec, THUMBNAIL_SPECS, thumbnail_path
from .config import JobConfig
from .s3_config import S3Config
from .s3_client import S3Client
from .local_client import LocalConfig, LocalClient
from .signing import PresignedUrlSigner, TokenException
from .fetcher import HttpFetcher
from .resolver import SourceResolver
from .deriver import DerivedThumbnail, ImageDeriver
from .publisher import StorageBackend, StoragePublisher
from .job_stats import JobStats
from .job import ThumbnailJob

__all__ = [
    "ThumbnailError",
    "InvalidAttachment",
    "SourceResolutionError",
    "UnknownThumbnailSize",
    "DerivationError",
    "PublishError",
    "AttachmentRef",
    "LocalFile",
    "InMemory",
    "ResolvedSource",
    "ThumbnailSpec",
    "THUMBNAIL_SPECS",
    "thumbnail_path",
    "JobConfig",
    "S3Config",
    "S3Client",
    "LocalConfig",
    "LocalClient",
    "PresignedUrlSigner",
    "TokenException",
    "HttpFetcher",
    "SourceResolver",
    "DerivedThumbnail",
    "ImageDeriver",
    "StorageBackend",
    "StoragePublisher",
    "JobStats",
    "ThumbnailJob",
]
