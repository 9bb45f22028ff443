"""
SourceResolver - Decides where an attachment's bytes come from and
acquires them once.
"""

import logging
import re
from typing import Optional
from urllib.parse import unquote, urlsplit

from .attachment import AttachmentRef, InMemory, LocalFile, ResolvedSource
from .config import DEFAULT_S3_MARKER
from .errors import InvalidAttachment, SourceResolutionError
from .fetcher import HttpFetcher
from .signing import PresignedUrlSigner


DOWNLOAD_PREFIX = 'download/'

# Escapes of reserved URI characters: # $ & + , / : ; = ? @
RESERVED_ESCAPE = re.compile(r'(%(?:2[346BbCcFf]|3[AaBbDdFf]|40))')


class SourceResolver:
    """
    Resolves an attachment to a readable image source.

    Resolution order:
        1. path: sign it, map the signed URL back to a stored file, read locally
        2. url on object storage: presign the object key and fetch it
        3. any other url: fetch it directly
    """

    def __init__(
        self,
        signer: PresignedUrlSigner,
        materializer,
        fetcher: HttpFetcher,
        s3_marker: str = DEFAULT_S3_MARKER,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize resolver.

        Args:
            signer: Issues and resolves signed URLs
            materializer: Object with get_file(path=...) returning {'path': local_path}
            fetcher: HTTP fetcher for remote sources
            s3_marker: Substring marking an object-storage URL
            logger: Optional logger instance
        """
        self.signer = signer
        self.materializer = materializer
        self.fetcher = fetcher
        self.s3_marker = s3_marker
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, attachment: AttachmentRef) -> ResolvedSource:
        """
        Acquire the source for an attachment.

        Raises:
            InvalidAttachment: If the attachment has neither path nor url
            SourceResolutionError: If signing, fetching or locating fails
        """
        try:
            if attachment.path:
                return self._resolve_path(attachment.path)
            if attachment.url:
                if self.s3_marker in attachment.url:
                    return self._resolve_object_storage_url(attachment.url)
                return self._resolve_url(attachment.url)
        except SourceResolutionError as e:
            if e.attachment is None:
                e.attachment = attachment.display_name
            raise
        except Exception as e:
            raise SourceResolutionError(
                f"Could not resolve source for {attachment.display_name}: {e}",
                attachment=attachment.display_name,
            ) from e

        raise InvalidAttachment("Attachment has neither path nor url")

    @staticmethod
    def decode_uri(text: str) -> str:
        """
        Percent-decode text, leaving escapes of reserved characters such as
        %2F and %2B encoded so they stay part of a single key segment.
        """
        return ''.join(
            part if RESERVED_ESCAPE.fullmatch(part) else unquote(part)
            for part in RESERVED_ESCAPE.split(text)
        )

    @staticmethod
    def strip_download_prefix(path: str) -> str:
        if path.startswith(DOWNLOAD_PREFIX):
            return path[len(DOWNLOAD_PREFIX):]
        return path

    def _resolve_path(self, path: str) -> LocalFile:
        relative_path = self.strip_download_prefix(path)
        self.logger.debug(f"Resolving stored path: {relative_path}")

        signed_url = self.signer.get_signed_url(relative_path)
        full_path = self.signer.get_path_from_signed_url(signed_url)
        fs_path = unquote(full_path.split('?', 1)[0])

        local = self.materializer.get_file(path=fs_path)
        return LocalFile(
            relative_path=relative_path,
            path=local['path'],
            temporary=bool(local.get('temporary', False)),
        )

    def _resolve_object_storage_url(self, url: str) -> InMemory:
        self._check_url(url)
        relative_path = self.decode_uri(url.split(self.s3_marker, 1)[1])
        if not relative_path:
            raise SourceResolutionError(f"Object-storage URL has no key: {url}")
        self.logger.debug(f"Resolving object-storage key: {relative_path}")

        signed_url = self.signer.get_signed_url(relative_path, s3=True)
        return InMemory(relative_path=relative_path, data=self.fetcher.fetch(signed_url))

    def _resolve_url(self, url: str) -> InMemory:
        self._check_url(url)
        self.logger.debug(f"Resolving remote URL: {url}")
        return InMemory(relative_path=url, data=self.fetcher.fetch(url))

    @staticmethod
    def _check_url(url: str) -> None:
        parts = urlsplit(url)
        if parts.scheme not in ('http', 'https') or not parts.netloc:
            raise SourceResolutionError(f"Malformed URL: {url}")
