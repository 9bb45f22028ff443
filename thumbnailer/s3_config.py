"""
S3Config - Connection settings for S3/MinIO storage.
"""

import os
from dataclasses import dataclass
from typing import List, Optional


TRUE_VALUES = {'yes', 'true', 't', 'y', '1'}


@dataclass
class S3Config:
    """
    S3 connection settings.

    Attributes:
        endpoint: S3 endpoint URL (None for AWS default)
        bucket: Bucket holding uploads and thumbnails
        prefix: Key prefix prepended to every relative path
        access_key: Access key id
        secret_key: Secret access key
        region: Region name
        url_expiry: Lifetime of presigned URLs in seconds
        verify_ssl: Verify TLS certificates
    """
    endpoint: Optional[str] = None
    bucket: Optional[str] = None
    prefix: str = ''
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: Optional[str] = None
    url_expiry: int = 3600
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Load configuration from S3_* environment variables."""
        return cls(
            endpoint=os.getenv('S3_ENDPOINT') or None,
            bucket=os.getenv('S3_BUCKET') or None,
            prefix=os.getenv('S3_PREFIX', ''),
            access_key=os.getenv('S3_ACCESS_KEY') or None,
            secret_key=os.getenv('S3_SECRET_KEY') or None,
            region=os.getenv('S3_REGION') or None,
            url_expiry=int(os.getenv('S3_URL_EXPIRY', '3600')),
            verify_ssl=os.getenv('S3_VERIFY_SSL', 'true').lower() in TRUE_VALUES,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.bucket)

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty if valid)."""
        errors = []
        if not self.bucket:
            errors.append("S3_BUCKET is not set")
        if bool(self.access_key) != bool(self.secret_key):
            errors.append("S3_ACCESS_KEY and S3_SECRET_KEY must be set together")
        if self.url_expiry <= 0:
            errors.append(f"S3_URL_EXPIRY must be positive, got {self.url_expiry}")
        return errors
