"""
HttpFetcher - Downloads remote originals over HTTP.
"""

import logging
from typing import Optional

import requests

from .errors import SourceResolutionError


class HttpFetcher:
    """
    Fetches URLs into memory with a bounded timeout.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize fetcher.

        Args:
            timeout: Seconds allowed for connecting and for each read
            session: Optional requests session (one is created if omitted)
            logger: Optional logger instance
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, url: str) -> bytes:
        """
        GET a URL and return the response body.

        Raises:
            SourceResolutionError: On network errors or a non-2xx status
        """
        self.logger.debug(f"Fetching: {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SourceResolutionError(f"Failed to fetch {url}: {e}", attachment=url) from e
        return response.content

    def close(self) -> None:
        self.session.close()
