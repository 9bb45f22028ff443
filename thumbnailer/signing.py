"""
Signed download URLs for stored uploads.

Local uploads are signed with an HMAC token of the form '<mac>:<timestamp>'
appended as a 'token' query parameter. Object-storage uploads are signed by
S3 itself through a presigned GET URL.
"""

import hmac
import logging
import time
from typing import Optional
from urllib.parse import parse_qs, quote, unquote, urlsplit

from .errors import SourceResolutionError
from .s3_client import S3Client


class TokenException(SourceResolutionError):
    """Raised when a signed URL token is invalid for some reason."""
    pass


def get_timestamp() -> int:
    """Return an integer timestamp with one second resolution for
    the current moment.
    """
    return int(time.time())


def generate_token(key: str, timestamp, filename: str) -> str:
    """Generate the auth token for the given filename and timestamp."""
    timestamp = str(timestamp)
    mac = hmac.new(key.encode(), timestamp.encode() + filename.encode(), digestmod='md5')
    return ':'.join((mac.hexdigest(), timestamp))


def validate_token(
    token_in: str,
    filename: str,
    key: Optional[str],
    time_tolerance: Optional[int] = None
) -> None:
    """Validate the input token for the given filename. Checks that the
    token is within the time tolerance and is valid. Validation is skipped
    when no key is configured.
    """
    if key is None:
        return
    if not token_in:
        raise TokenException("Auth token is missing.")
    if ':' not in token_in:
        raise TokenException("Auth token is malformed.")

    mac_in, timestr = token_in.split(':', 1)
    try:
        timestamp = int(timestr)
    except ValueError:
        raise TokenException("Auth token is malformed.") from None

    if time_tolerance is not None:
        current_time = get_timestamp()
        if not abs(current_time - timestamp) < time_tolerance:
            raise TokenException(
                "Auth token timestamp out of range: %s vs %s" % (timestamp, current_time))

    if not hmac.compare_digest(token_in, generate_token(key, timestamp, filename)):
        raise TokenException("Auth token is invalid.")


class PresignedUrlSigner:
    """
    Issues and resolves signed URLs for uploads.
    """

    def __init__(
        self,
        base_url: str,
        key: Optional[str] = None,
        time_tolerance: Optional[int] = None,
        s3_client: Optional[S3Client] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize signer.

        Args:
            base_url: Base of local download URLs (e.g. 'https://host/download')
            key: HMAC secret; None issues unsigned URLs and skips validation
            time_tolerance: Seconds a token stays valid, or None for no limit
            s3_client: Client used to presign object-storage URLs
            logger: Optional logger instance
        """
        self.base_url = base_url.rstrip('/')
        self.key = key
        self.time_tolerance = time_tolerance
        self.s3_client = s3_client
        self.logger = logger or logging.getLogger(__name__)

    def get_signed_url(self, path: str, s3: bool = False) -> str:
        """
        Return a signed URL granting read access to path.

        Args:
            path: Relative path of the upload
            s3: Sign for object storage instead of local storage
        """
        if s3:
            if self.s3_client is None:
                raise SourceResolutionError(
                    f"Cannot sign object-storage path without S3 configured: {path}",
                    attachment=path,
                )
            return self.s3_client.presigned_url(path)

        url = f"{self.base_url}/{quote(path)}"
        if self.key is None:
            return url
        token = generate_token(self.key, get_timestamp(), path)
        return f"{url}?token={quote(token)}"

    def get_path_from_signed_url(self, url: str) -> str:
        """
        Resolve a local signed URL back to its storage path.

        Returns:
            The relative path, still URL-quoted, followed by the URL's query
            string, e.g. 'a/b%20c.png?token=...'

        Raises:
            SourceResolutionError: If the URL was not issued by this signer
            TokenException: If the token does not validate
        """
        parts = urlsplit(url)
        base = urlsplit(self.base_url)
        prefix = base.path.rstrip('/') + '/'

        if (parts.scheme, parts.netloc) != (base.scheme, base.netloc) \
                or not parts.path.startswith(prefix):
            raise SourceResolutionError(f"Not a signed download URL: {url}")

        quoted = parts.path[len(prefix):]
        path = unquote(quoted)
        if not path:
            raise SourceResolutionError(f"Signed URL has no path: {url}")

        token = parse_qs(parts.query).get('token', [''])[0]
        validate_token(token, path, self.key, self.time_tolerance)
        self.logger.debug(f"Valid signed URL for {path}")

        return f"{quoted}?{parts.query}" if parts.query else quoted
