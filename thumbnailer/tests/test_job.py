"""Tests for ThumbnailJob."""

import io
from unittest.mock import MagicMock

import pytest
from PIL import Image

from thumbnailer.attachment import AttachmentRef, InMemory, LocalFile
from thumbnailer.cli import create_job
from thumbnailer.deriver import ImageDeriver
from thumbnailer.errors import DerivationError, SourceResolutionError
from thumbnailer.job import ThumbnailJob
from thumbnailer.publisher import StoragePublisher
from thumbnailer.resolver import SourceResolver


VARIANTS = ('card_cover', 'small', 'tiny')


class TestThumbnailJob:
    """Tests for ThumbnailJob with a mocked resolver."""

    @pytest.fixture
    def resolver(self, sample_image_bytes):
        resolver = MagicMock(spec=SourceResolver)
        resolver.resolve.side_effect = lambda a: InMemory(
            relative_path=a.path or a.url, data=sample_image_bytes)
        return resolver

    @pytest.fixture
    def job(self, resolver, memory_storage, logger):
        return ThumbnailJob(
            resolver=resolver,
            deriver=ImageDeriver(),
            publisher=StoragePublisher(memory_storage),
            logger=logger,
        )

    def test_non_images_skipped(self, job, resolver, memory_storage):
        """Test non-image attachments cause no resolution or writes."""
        stats = job.run({'attachments': [
            {'mimetype': 'application/pdf', 'path': 'download/doc.pdf'},
            {'mimetype': 'text/plain', 'url': 'https://cdn.example.com/a.txt'},
        ]})

        assert stats.skipped == 2
        assert stats.processed == 0
        resolver.resolve.assert_not_called()
        assert memory_storage.objects == {}
        assert stats.succeeded

    def test_generates_all_variants(self, job, memory_storage):
        stats = job.run({'attachments': [{'mimetype': 'image/jpeg', 'path': 'a/b.jpg'}]})

        assert stats.processed == 1
        assert stats.results == [{
            'attachment': 'a/b.jpg',
            'thumbnails': {name: f"uploads/thumbnails/a/b.jpg/{name}.jpg" for name in VARIANTS},
        }]
        assert sorted(memory_storage.objects) == sorted(
            f"uploads/thumbnails/a/b.jpg/{name}.jpg" for name in VARIANTS)
        assert stats.bytes_generated == sum(len(d) for d in memory_storage.objects.values())

    def test_failure_isolated_per_attachment(self, job, memory_storage, mocker):
        """Test a failing attachment does not stop the rest of the batch."""
        original = job.deriver.derive

        def derive(source):
            if source.relative_path == 'two.png':
                raise DerivationError('corrupt image', attachment='two.png')
            return original(source)

        mocker.patch.object(job.deriver, 'derive', side_effect=derive)

        stats = job.run({'attachments': [
            {'mimetype': 'image/png', 'path': 'one.png'},
            {'mimetype': 'image/png', 'path': 'two.png'},
            {'mimetype': 'image/png', 'path': 'three.png'},
        ]})

        assert stats.processed == 2
        assert stats.errors == 1
        assert not stats.succeeded
        assert 'two.png' in stats.error_details[0]
        written = set(memory_storage.objects)
        for name in VARIANTS:
            assert f"uploads/thumbnails/one.png/{name}.jpg" in written
            assert f"uploads/thumbnails/three.png/{name}.jpg" in written
        assert not any('two.png' in path for path in written)

    def test_resolution_failure_recorded(self, job, resolver):
        resolver.resolve.side_effect = SourceResolutionError('404 Not Found')

        stats = job.run({'attachments': [{'mimetype': 'image/png', 'url': 'https://cdn.example.com/x.png'}]})

        assert stats.errors == 1
        assert stats.results == []

    def test_publish_failure_leaves_no_partial_set(self, resolver, failing_storage, logger):
        storage = failing_storage(fail_on={'tiny.jpg'})
        job = ThumbnailJob(resolver, ImageDeriver(), StoragePublisher(storage, max_workers=1), logger)

        stats = job.run({'attachments': [{'mimetype': 'image/png', 'path': 'a.png'}]})

        assert stats.errors == 1
        assert storage.objects == {}

    def test_invalid_entry_does_not_abort_batch(self, job):
        stats = job.run({'attachments': [
            {'path': 'no-mimetype.png'},
            {'mimetype': 'image/png', 'path': 'ok.png'},
        ]})

        assert stats.errors == 1
        assert stats.processed == 1

    def test_attachment_without_source(self, job):
        job.resolver = SourceResolver(MagicMock(), MagicMock(), MagicMock())

        stats = job.run({'attachments': [{'mimetype': 'image/png'}]})

        assert stats.errors == 1
        assert 'neither path nor url' in stats.error_details[0]

    @pytest.mark.parametrize('payload', [
        None,
        [],
        {},
        {'attachments': 'a.png'},
    ])
    def test_malformed_payload_swallowed(self, job, payload):
        """Test a malformed payload is reported, not raised."""
        stats = job.run(payload)

        assert stats.payload_error is not None
        assert not stats.succeeded
        assert stats.total_attachments == 0

    def test_duplicate_attachments_each_recorded(self, job):
        """Test repeated paths in one batch keep a result per entry."""
        stats = job.run({'attachments': [
            {'mimetype': 'image/png', 'path': 'a.png'},
            {'mimetype': 'image/png', 'path': 'a.png'},
        ]})

        assert stats.processed == 2
        assert [r['attachment'] for r in stats.results] == ['a.png', 'a.png']

    def test_close_releases_fetcher(self, job, resolver):
        resolver.fetcher = MagicMock()

        job.close()

        resolver.fetcher.close.assert_called_once()

    def test_rerun_overwrites_identically(self, job, memory_storage):
        """Test re-running produces the same bytes at the same paths."""
        payload = {'attachments': [{'mimetype': 'image/png', 'path': 'a.png'}]}

        job.run(payload)
        first = dict(memory_storage.objects)
        job.run(payload)

        assert memory_storage.objects == first

    def test_generate_thumbnail_raises(self, job, resolver):
        resolver.resolve.side_effect = SourceResolutionError('signing failed')

        with pytest.raises(SourceResolutionError):
            job.generate_thumbnail(AttachmentRef('image/png', path='a.png'))

    def test_temporary_source_cleaned_up(self, job, resolver, tmp_path, sample_image_bytes):
        tmp = tmp_path / 's3dl_a.png'
        tmp.write_bytes(sample_image_bytes)
        resolver.resolve.side_effect = None
        resolver.resolve.return_value = LocalFile('a.png', str(tmp), temporary=True)

        job.generate_thumbnail(AttachmentRef('image/png', path='a.png'))

        assert not tmp.exists()


class TestThumbnailJobEndToEnd:
    """Jobs wired through create_job with local storage."""

    def test_stored_path(self, job_config, local_client, tmp_path, square_image_bytes):
        """Test 'download/a/b.png' yields thumbnails under uploads/thumbnails/a/b.png/."""
        original = tmp_path / 'nc' / 'a' / 'b.png'
        original.parent.mkdir(parents=True)
        original.write_bytes(square_image_bytes)
        job = create_job(job_config, local_client)

        stats = job.run({'attachments': [{'mimetype': 'image/png', 'path': 'download/a/b.png'}]})

        assert stats.succeeded
        thumb_dir = tmp_path / 'nc' / 'uploads' / 'thumbnails' / 'a' / 'b.png'
        assert sorted(p.name for p in thumb_dir.iterdir()) == ['card_cover.jpg', 'small.jpg', 'tiny.jpg']
        card = Image.open(thumb_dir / 'card_cover.jpg')
        assert card.size == (512, 512)

    def test_remote_url(self, job_config, local_client, tmp_path, wide_image_bytes, mocker):
        """Test generic URLs are fetched directly."""
        response = MagicMock()
        response.content = wide_image_bytes
        get = mocker.patch('requests.Session.get', return_value=response)
        job = create_job(job_config, local_client)

        stats = job.run({'attachments': [{'mimetype': 'image/jpeg', 'url': 'https://cdn.example.com/img.png'}]})

        assert stats.succeeded
        get.assert_called_once_with('https://cdn.example.com/img.png', timeout=5.0)
        tiny = tmp_path / 'nc' / 'uploads' / 'thumbnails' / 'https:' / 'cdn.example.com' / 'img.png' / 'tiny.jpg'
        assert Image.open(io.BytesIO(tiny.read_bytes())).size == (128, 64)

    def test_object_storage_url(self, job_config, local_client, tmp_path, sample_image_bytes, mocker):
        """Test object-storage URLs are presigned before fetching."""
        s3 = MagicMock()
        s3.presigned_url.return_value = 'https://bucket.s3.amazonaws.com/x/y.png?X-Amz-Signature=s'
        response = MagicMock()
        response.content = sample_image_bytes
        get = mocker.patch('requests.Session.get', return_value=response)
        job = create_job(job_config, local_client, s3_client=s3)

        stats = job.run({'attachments': [{'mimetype': 'image/png', 'url': 'https://bucket.s3.amazonaws.com/x/y.png'}]})

        assert stats.succeeded
        s3.presigned_url.assert_called_once_with('x/y.png')
        get.assert_called_once_with('https://bucket.s3.amazonaws.com/x/y.png?X-Amz-Signature=s', timeout=5.0)
        assert (tmp_path / 'nc' / 'uploads' / 'thumbnails' / 'x' / 'y.png' / 'small.jpg').exists()
