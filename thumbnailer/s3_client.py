"""
S3Client - S3/MinIO operations for signing, downloading and writing objects.
"""

import logging
import os
import tempfile
from mimetypes import guess_type
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config

from .s3_config import S3Config


class S3Client:
    """
    Wrapper for S3/MinIO operations.

    Relative paths are mapped to keys under the configured prefix. Also acts
    as a storage backend for thumbnails through write_stream().
    """

    def __init__(self, config: S3Config, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: S3 configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def get_key(self, rel: str) -> str:
        """Normalize a relative path into an S3 object key."""
        return f"{self.config.prefix}/{rel.lstrip('/')}".lstrip('/')

    def presigned_url(self, rel: str) -> str:
        """Generate a time-limited GET URL for an object."""
        return self._client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.config.bucket, 'Key': self.get_key(rel)},
            ExpiresIn=self.config.url_expiry
        )

    def get_file(self, path: str) -> dict:
        """
        Download an object to a temporary local file.

        Returns:
            Dict with 'path', the temp file path, and 'temporary': True;
            the caller removes the file when done
        """
        _, ext = os.path.splitext(path)
        fd, tmp_path = tempfile.mkstemp(prefix='s3dl_', suffix=ext)
        os.close(fd)
        try:
            self._client.download_file(self.config.bucket, self.get_key(path), tmp_path)
        except Exception:
            os.remove(tmp_path)
            raise
        return {'path': tmp_path, 'temporary': True}

    def write_stream(self, rel: str, stream: BinaryIO) -> None:
        """Upload a stream to S3, replacing any existing object."""
        content_type, _ = guess_type(rel)
        key = self.get_key(rel)
        self.logger.debug(f"Uploading: {key}")
        self._client.upload_fileobj(
            stream,
            self.config.bucket,
            key,
            ExtraArgs={'ContentType': content_type or 'application/octet-stream'}
        )

    def delete_object(self, rel: str) -> None:
        """Delete an object from S3."""
        self._client.delete_object(Bucket=self.config.bucket, Key=self.get_key(rel))
