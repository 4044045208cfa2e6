"""
Cover extraction.

Covers are pulled out of the book container and always re-encoded as JPEG,
whatever the embedded image format was.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from PIL import Image

from dircat.mime import COVER_MIME
from dircat.storage.base import CoverImage
from dircat.storage.metadata import find_cover_item, open_epub

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE: Tuple[int, int] = (200, 300)
JPEG_QUALITY = 85


def epub_cover_bytes(path: Path) -> Optional[bytes]:
    """Raw bytes of the declared cover item of an EPUB, or None."""
    try:
        book = open_epub(path)
    except Exception as e:
        logger.warning(f"Cannot open EPUB {path} for cover: {e}")
        return None

    item = find_cover_item(book)
    if item is None:
        logger.debug(f"No cover declared in {path}")
        return None
    return item.get_content()


CoverSource = Callable[[Path], Optional[bytes]]

COVER_SOURCES: Dict[str, CoverSource] = {
    ".epub": epub_cover_bytes,
}


def encode_jpeg(data: bytes, max_size: Optional[Tuple[int, int]] = None) -> bytes:
    """
    Decode an image and re-encode it as JPEG.

    Args:
        data: Image bytes in any format Pillow reads
        max_size: Bounding box to shrink into, keeping aspect ratio

    Returns:
        JPEG bytes
    """
    with Image.open(BytesIO(data)) as img:
        img.load()
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        if max_size:
            img.thumbnail(max_size)
        out = BytesIO()
        img.save(out, format="JPEG", quality=JPEG_QUALITY)
        return out.getvalue()


class CoverExtractor:
    """Extracts covers and thumbnails from book files."""

    def __init__(self, sources: Optional[Dict[str, CoverSource]] = None):
        self.sources = dict(COVER_SOURCES if sources is None else sources)

    def supports(self, path: Path) -> bool:
        return path.suffix.lower() in self.sources

    def _render(self, path: Path, max_size: Optional[Tuple[int, int]]) -> Optional[CoverImage]:
        source = self.sources.get(path.suffix.lower())
        if source is None:
            return None

        data = source(path)
        if not data:
            return None

        try:
            return CoverImage(content=encode_jpeg(data, max_size), content_type=COVER_MIME)
        except Exception as e:
            logger.warning(f"Cannot re-encode cover of {path}: {e}")
            return None

    def cover(self, path: Path) -> Optional[CoverImage]:
        """Full size cover as JPEG, or None when there is none."""
        return self._render(path, None)

    def thumbnail(self, path: Path) -> Optional[CoverImage]:
        """Cover shrunk to THUMBNAIL_SIZE, or None."""
        return self._render(path, THUMBNAIL_SIZE)
