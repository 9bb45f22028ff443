"""
Pytest fixtures for thumbnailer tests.
"""

import io

import pytest
from PIL import Image


class MemoryStorage:
    """Storage backend that keeps written streams in a dict."""

    def __init__(self, fail_on=()):
        self.objects = {}
        self.deleted = []
        self.fail_on = set(fail_on)

    def write_stream(self, path, stream):
        if any(marker in path for marker in self.fail_on):
            raise IOError(f"disk full writing {path}")
        self.objects[path] = stream.read()

    def delete_object(self, path):
        self.deleted.append(path)
        self.objects.pop(path, None)


def make_image_bytes(size, color='red', mode='RGB', fmt='JPEG'):
    img = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def local_client(tmp_path):
    """Fixture providing a LocalClient rooted in a temp directory."""
    from thumbnailer.local_client import LocalClient, LocalConfig

    return LocalClient(LocalConfig(root_path=str(tmp_path), prefix='nc'))


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def failing_storage():
    """Fixture providing a factory for storage that fails on matching paths."""
    return MemoryStorage


@pytest.fixture
def job_config():
    from thumbnailer.config import JobConfig

    return JobConfig(
        signing_key='test-key',
        base_url='https://files.example.com/download',
        time_tolerance=600,
        fetch_timeout=5.0,
        variant_timeout=30.0,
    )


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes."""
    return make_image_bytes((100, 100))


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    return make_image_bytes((100, 100), color=(255, 0, 0, 128), mode='RGBA', fmt='PNG')


@pytest.fixture
def square_image_bytes():
    """Fixture providing a 1000x1000 PNG."""
    return make_image_bytes((1000, 1000), color='blue', fmt='PNG')


@pytest.fixture
def wide_image_bytes():
    """Fixture providing a 2000x1000 JPEG."""
    return make_image_bytes((2000, 1000), color='green')


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')
