"""
ThumbnailJob - Generates thumbnails for a batch of uploaded attachments.
"""

import logging
from typing import Dict, List, Optional

from .attachment import AttachmentRef
from .deriver import ImageDeriver
from .errors import InvalidAttachment
from .job_stats import JobStats
from .publisher import StoragePublisher
from .resolver import SourceResolver


class ThumbnailJob:
    """
    Runs resolve -> derive -> publish for each image attachment in a batch.

    Attachments are processed one at a time. A failure is logged and
    recorded, and the batch carries on with the next attachment.
    """

    def __init__(
        self,
        resolver: SourceResolver,
        deriver: ImageDeriver,
        publisher: StoragePublisher,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize job.

        Args:
            resolver: Acquires source bytes for an attachment
            deriver: Renders the thumbnail variants
            publisher: Writes variants to storage
            logger: Optional logger instance
        """
        self.resolver = resolver
        self.deriver = deriver
        self.publisher = publisher
        self.logger = logger or logging.getLogger(__name__)
        self.stats = JobStats()

    def run(self, payload: dict) -> JobStats:
        """
        Process a batch payload of the form {'attachments': [...]}.

        Never raises: a malformed payload is logged and reported through
        JobStats.payload_error, per-attachment failures through
        JobStats.errors.
        """
        self.stats = JobStats()

        try:
            entries = self.parse_payload(payload)
        except Exception as e:
            self.logger.exception(f"Thumbnail job payload rejected: {e}")
            self.stats.payload_error = str(e)
            return self.stats

        self.stats.total_attachments = len(entries)
        self.logger.info(f"Starting thumbnail job: {len(entries)} attachments")

        for entry in entries:
            try:
                attachment = AttachmentRef.from_dict(entry)
            except InvalidAttachment as e:
                self.logger.error(f"Invalid attachment entry: {e}")
                self.stats.errors += 1
                self.stats.error_details.append(f"Invalid attachment entry: {e}")
                continue

            if not attachment.is_image:
                self.logger.debug(f"Skipping non-image {attachment.display_name} ({attachment.mimetype})")
                self.stats.skipped += 1
                continue
            self._process_attachment(attachment)

        self.logger.info(
            f"Thumbnail job complete: {self.stats.processed} generated, "
            f"{self.stats.skipped} skipped, {self.stats.errors} errors "
            f"({self.stats.elapsed_seconds:.1f}s)"
        )
        return self.stats

    @staticmethod
    def parse_payload(payload: dict) -> List[dict]:
        """
        Read the attachment entries from a batch payload.

        Raises:
            InvalidAttachment: If the payload has no attachment list
        """
        if not isinstance(payload, dict):
            raise InvalidAttachment(f"Payload is not an object: {type(payload).__name__}")
        entries = payload.get('attachments')
        if not isinstance(entries, list):
            raise InvalidAttachment("Payload has no 'attachments' list")
        return entries

    def generate_thumbnail(self, attachment: AttachmentRef) -> Dict[str, str]:
        """
        Generate and publish every variant for one attachment.

        Returns:
            Dict mapping variant name to destination path

        Raises:
            ThumbnailError: If any stage fails; no thumbnails are left behind
        """
        try:
            source = self.resolver.resolve(attachment)
            try:
                thumbnails = self.deriver.derive(source)
                result = self.publisher.publish_all(thumbnails)
            finally:
                source.cleanup()
        except Exception as e:
            self.logger.error(f"Failed to generate thumbnails for {attachment.display_name}: {e}")
            raise

        self.stats.bytes_generated += sum(len(thumb.data) for thumb in thumbnails)
        return result

    def close(self) -> None:
        """Release the HTTP session used for remote sources."""
        self.resolver.fetcher.close()

    def _process_attachment(self, attachment: AttachmentRef) -> bool:
        """Process a single attachment, recording the outcome."""
        try:
            result = self.generate_thumbnail(attachment)
        except Exception as e:
            self.stats.errors += 1
            self.stats.error_details.append(f"Error processing {attachment.display_name}: {e}")
            return False

        self.stats.processed += 1
        self.stats.results.append({'attachment': attachment.display_name, 'thumbnails': result})
        self.logger.info(
            f"Generated: {attachment.display_name} -> {', '.join(sorted(result))} "
            f"[{self.stats.completed_count}/{self.stats.total_attachments}]"
        )
        return True
