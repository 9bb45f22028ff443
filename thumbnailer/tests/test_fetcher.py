"""Tests for HttpFetcher."""

from unittest.mock import MagicMock

import pytest
import requests

from thumbnailer.errors import SourceResolutionError
from thumbnailer.fetcher import HttpFetcher


class TestHttpFetcher:
    """Tests for HttpFetcher."""

    @pytest.fixture
    def session(self):
        return MagicMock(spec=requests.Session)

    def test_fetch(self, session):
        response = MagicMock()
        response.content = b'image data'
        session.get.return_value = response
        fetcher = HttpFetcher(timeout=5.0, session=session)

        result = fetcher.fetch('https://cdn.example.com/img.png')

        assert result == b'image data'
        session.get.assert_called_once_with('https://cdn.example.com/img.png', timeout=5.0)
        response.raise_for_status.assert_called_once()

    def test_fetch_http_error(self, session):
        """Test non-2xx responses raise SourceResolutionError."""
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('404 Client Error')
        session.get.return_value = response
        fetcher = HttpFetcher(session=session)

        with pytest.raises(SourceResolutionError, match='404'):
            fetcher.fetch('https://cdn.example.com/missing.png')

    def test_fetch_network_error(self, session):
        session.get.side_effect = requests.exceptions.ConnectionError('connection refused')
        fetcher = HttpFetcher(session=session)

        with pytest.raises(SourceResolutionError) as exc_info:
            fetcher.fetch('https://cdn.example.com/img.png')

        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)

    def test_fetch_timeout(self, session):
        session.get.side_effect = requests.exceptions.Timeout('read timed out')
        fetcher = HttpFetcher(session=session)

        with pytest.raises(SourceResolutionError, match='timed out'):
            fetcher.fetch('https://cdn.example.com/slow.png')

    def test_default_session(self):
        fetcher = HttpFetcher()

        assert isinstance(fetcher.session, requests.Session)
        fetcher.close()
