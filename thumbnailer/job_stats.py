"""
JobStats - Outcome of one thumbnail job run.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class JobStats:
    """
    Statistics for a job run.

    Attributes:
        total_attachments: Attachments in the batch
        processed: Attachments with a complete thumbnail set
        skipped: Attachments that are not images
        errors: Attachments that failed
        bytes_generated: Total bytes of thumbnails written
        start_time: Start timestamp
        error_details: List of error messages
        results: One entry per generated attachment, in batch order:
            {'attachment': display name, 'thumbnails': variant name -> destination path}
        payload_error: Set when the batch payload itself could not be read
    """
    total_attachments: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    bytes_generated: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)
    results: List[dict] = field(default_factory=list)
    payload_error: Optional[str] = None

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def completed_count(self) -> int:
        """Total completed (processed + skipped + errors)."""
        return self.processed + self.skipped + self.errors

    @property
    def succeeded(self) -> bool:
        """True if the payload was readable and no attachment failed."""
        return self.payload_error is None and self.errors == 0

    def to_dict(self) -> dict:
        return {
            'total_attachments': self.total_attachments,
            'processed': self.processed,
            'skipped': self.skipped,
            'errors': self.errors,
            'bytes_generated': self.bytes_generated,
            'elapsed_seconds': round(self.elapsed_seconds, 3),
            'error_details': list(self.error_details),
            'results': list(self.results),
            'payload_error': self.payload_error,
        }
