"""
MIME types and link relations used by the catalog.

The registry is built once at startup and handed to the store; nothing in
here is mutated afterwards.
"""

import mimetypes
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional


# OPDS feed types
OPDS_NAVIGATION_MIME = "application/atom+xml;profile=opds-catalog;kind=navigation"
OPDS_ACQUISITION_MIME = "application/atom+xml;profile=opds-catalog;kind=acquisition"

# Link relations
REL_SUBSECTION = "subsection"
REL_ACQUISITION = "http://opds-spec.org/acquisition"
REL_IMAGE = "http://opds-spec.org/image"
REL_THUMBNAIL = "http://opds-spec.org/image/thumbnail"

COVER_MIME = "image/jpeg"

# Book formats
BOOK_MIMES = {
    ".mobi": "application/x-mobipocket-ebook",
    ".epub": "application/epub+zip",
    ".cbz": "application/x-cbz",
    ".cbr": "application/x-cbr",
    ".fb2": "text/fb2+xml",
    ".pdf": "application/pdf",
}

# Image formats
IMAGE_MIMES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
}

EPUB_MIME = BOOK_MIMES[".epub"]
PDF_MIME = BOOK_MIMES[".pdf"]


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


@dataclass(frozen=True)
class MimeRegistry:
    """Extension to MIME type lookup plus the supported extension sets."""
    types: Mapping[str, str] = field(default_factory=dict)
    book_extensions: FrozenSet[str] = frozenset()
    image_extensions: FrozenSet[str] = frozenset()

    @classmethod
    def create(cls, extra_types: Optional[Dict[str, str]] = None) -> 'MimeRegistry':
        """
        Build the registry from the built-in formats.

        Args:
            extra_types: Additional book extensions mapped to MIME types,
                e.g. {"azw3": "application/vnd.amazon.ebook"}

        Returns:
            Read-only MimeRegistry
        """
        books = dict(BOOK_MIMES)
        for ext, mime in (extra_types or {}).items():
            books[_normalize_extension(ext)] = mime

        types = dict(books)
        types.update(IMAGE_MIMES)

        return cls(
            types=MappingProxyType(types),
            book_extensions=frozenset(books),
            image_extensions=frozenset(IMAGE_MIMES),
        )

    def is_book(self, ext: str) -> bool:
        return _normalize_extension(ext) in self.book_extensions

    def is_image(self, ext: str) -> bool:
        return _normalize_extension(ext) in self.image_extensions

    def is_supported(self, ext: str) -> bool:
        return self.is_book(ext) or self.is_image(ext)

    def type_for(self, filename: str) -> str:
        """Get MIME type for a filename, falling back to the system table."""
        ext = _normalize_extension(os.path.splitext(filename)[1])
        if ext in self.types:
            return self.types[ext]
        guessed, _ = mimetypes.guess_type(filename)
        return guessed or "application/octet-stream"


DEFAULT_REGISTRY = MimeRegistry.create()
