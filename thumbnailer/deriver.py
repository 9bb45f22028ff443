"""
ImageDeriver - Resizes an original into the fixed set of thumbnail variants.
"""

import io
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageOps

from .attachment import ResolvedSource
from .errors import DerivationError, UnknownThumbnailSize
from .thumbnail_spec import (
    DEFAULT_THUMBNAIL_ROOT,
    THUMBNAIL_SPECS,
    ThumbnailSpec,
    get_spec,
    thumbnail_path,
)


@dataclass
class DerivedThumbnail:
    """
    An encoded thumbnail ready to publish.

    Attributes:
        name: Variant name
        path: Destination path
        data: JPEG bytes
        width: Output width in pixels
        height: Output height in pixels
    """
    name: str
    path: str
    data: bytes
    width: int
    height: int


class ImageDeriver:
    """
    Generates cover-fit JPEG thumbnails using Pillow.

    All variants of one source are rendered concurrently. Nothing is written
    here, so a failed variant leaves no output behind.
    """

    def __init__(
        self,
        variants: Sequence[str] = tuple(spec.name for spec in THUMBNAIL_SPECS),
        quality: int = 85,
        root: str = DEFAULT_THUMBNAIL_ROOT,
        max_workers: int = 3,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize deriver.

        Args:
            variants: Names of the variants to render
            quality: JPEG quality for output (default: 85)
            root: Destination root for thumbnail paths
            max_workers: Variants rendered in parallel
            timeout: Seconds to wait for all variants, or None to wait indefinitely
            logger: Optional logger instance
        """
        self.variants = tuple(variants)
        self.quality = quality
        self.root = root
        self.max_workers = max_workers
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def destination_paths(self, relative_path: str) -> Dict[str, str]:
        """Map each variant name to its destination path."""
        return {
            name: thumbnail_path(relative_path, name, self.root)
            for name in self.variants
        }

    def derive(self, source: ResolvedSource) -> List[DerivedThumbnail]:
        """
        Render every variant of source.

        Raises:
            UnknownThumbnailSize: If a configured variant is not in the size table
            InvalidAttachment: If the source path would escape the thumbnail root
            DerivationError: If any variant fails to render; pending
                variants are cancelled
        """
        specs = [get_spec(name) for name in self.variants]
        paths = self.destination_paths(source.relative_path)

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            future_to_spec = {
                executor.submit(self.render, source, spec): spec
                for spec in specs
            }
            done, not_done = wait(future_to_spec, timeout=self.timeout, return_when=FIRST_EXCEPTION)

            for future in not_done:
                future.cancel()

            results = {}
            for future in done:
                spec = future_to_spec[future]
                error = future.exception()
                if isinstance(error, UnknownThumbnailSize):
                    raise error
                if error is not None:
                    raise DerivationError(
                        f"Failed to render {spec.name} for {source.relative_path}: {error}",
                        attachment=source.relative_path,
                    ) from error
                results[spec.name] = future.result()

            if not_done:
                raise DerivationError(
                    f"Timed out rendering thumbnails for {source.relative_path} "
                    f"after {self.timeout}s",
                    attachment=source.relative_path,
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        thumbnails = []
        for spec in specs:
            data, (width, height) = results[spec.name]
            thumbnails.append(DerivedThumbnail(
                name=spec.name,
                path=paths[spec.name],
                data=data,
                width=width,
                height=height,
            ))
        return thumbnails

    def render(self, source: ResolvedSource, spec: ThumbnailSpec) -> Tuple[bytes, Tuple[int, int]]:
        """
        Render one variant.

        Returns:
            Tuple of (jpeg_bytes, (width, height))
        """
        with source.open() as f, Image.open(f) as img:
            img = ImageOps.exif_transpose(img)
            img = self._convert_color_mode(img)
            img = ImageOps.fit(
                img,
                self._target_size(img.size, spec),
                method=Image.Resampling.LANCZOS,
                centering=(0.5, 0.5),
            )

            output = io.BytesIO()
            img.save(output, format='JPEG', quality=self.quality, optimize=True)

        self.logger.debug(f"Rendered {spec.name} {img.size[0]}x{img.size[1]} for {source.relative_path}")
        return output.getvalue(), img.size

    @staticmethod
    def _target_size(size: Tuple[int, int], spec: ThumbnailSpec) -> Tuple[int, int]:
        """Target dimensions: the variant height, and its fixed width or one following the aspect ratio."""
        if spec.width is not None:
            return spec.width, spec.height
        width, height = size
        return max(1, round(width * spec.height / height)), spec.height

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Convert image to RGB, flattening transparency onto white."""
        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode == 'P':
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img
