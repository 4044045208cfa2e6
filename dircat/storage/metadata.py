"""
Per-format metadata readers.

Readers are selected by MIME type. A file no reader recognizes gets a
NOOPMetadata so it can still be listed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import ebooklib
import pypdf
from ebooklib import epub

from dircat.mime import EPUB_MIME, PDF_MIME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    """Book metadata as shown in the catalog. Empty strings mean absent."""
    title: str = ""
    language: str = ""
    identifier: str = ""
    creator: str = ""
    contributor: str = ""
    publisher: str = ""
    subject: str = ""
    description: str = ""
    has_cover: bool = False
    has_thumbnail: bool = False


class NOOPMetadata(Metadata):
    """Metadata for files no reader recognizes: every field is empty."""
    pass


class MetadataNotRecognized(Exception):
    """No reader could make sense of the file."""
    pass


def _values(book: epub.EpubBook, namespace: str, name: str) -> list:
    # get_metadata raises KeyError when the OPF never used the namespace
    try:
        return book.get_metadata(namespace, name) or []
    except KeyError:
        return []


def _first(book: epub.EpubBook, namespace: str, name: str) -> str:
    values = _values(book, namespace, name)
    if not values:
        return ""
    value = values[0][0]
    return value.strip() if isinstance(value, str) else ""


def find_cover_item(book: epub.EpubBook) -> Optional[epub.EpubItem]:
    """
    Locate the cover image of an EPUB.

    Uses the OPF 2 declaration <meta name="cover" content="item-id"/> and
    falls back to an EPUB 3 manifest item flagged as cover-image.
    """
    for _, attrs in _values(book, "OPF", "cover"):
        cover_id = (attrs or {}).get("content")
        if cover_id:
            item = book.get_item_with_id(cover_id)
            if item is not None:
                return item

    for item in book.get_items_of_type(ebooklib.ITEM_COVER):
        return item

    return None


def open_epub(path: Union[str, Path]) -> epub.EpubBook:
    """Read an EPUB container, skipping the NCX table of contents."""
    return epub.read_epub(str(path), options={"ignore_ncx": True})


def read_epub_metadata(path: Path) -> Metadata:
    """Extract metadata from an EPUB file using ebooklib."""
    try:
        book = open_epub(path)
    except Exception as e:
        raise MetadataNotRecognized(f"Cannot read EPUB {path}: {e}") from e

    has_cover = find_cover_item(book) is not None

    return Metadata(
        title=_first(book, "DC", "title"),
        language=_first(book, "DC", "language"),
        identifier=_first(book, "DC", "identifier"),
        creator=_first(book, "DC", "creator"),
        contributor=_first(book, "DC", "contributor"),
        publisher=_first(book, "DC", "publisher"),
        subject=_first(book, "DC", "subject"),
        description=_first(book, "DC", "description"),
        has_cover=has_cover,
        # Thumbnails are scaled from the cover
        has_thumbnail=has_cover,
    )


def _info_value(info, key: str) -> str:
    value = info.get(key)
    return str(value).strip() if value else ""


def read_pdf_metadata(path: Path) -> Metadata:
    """Extract metadata from the PDF document information dictionary."""
    try:
        with open(path, "rb") as f:
            reader = pypdf.PdfReader(f)
            info = reader.metadata or {}
            subject = _info_value(info, "/Subject") or _info_value(info, "/Keywords")
            return Metadata(
                title=_info_value(info, "/Title"),
                creator=_info_value(info, "/Author"),
                publisher=_info_value(info, "/Publisher"),
                subject=subject,
            )
    except Exception as e:
        raise MetadataNotRecognized(f"Cannot read PDF {path}: {e}") from e


Reader = Callable[[Path], Metadata]

READERS: Dict[str, Reader] = {
    EPUB_MIME: read_epub_metadata,
    PDF_MIME: read_pdf_metadata,
}


class MetadataProvider:
    """Dispatches a file to the metadata reader for its MIME type."""

    def __init__(self, readers: Optional[Dict[str, Reader]] = None):
        self.readers = dict(READERS if readers is None else readers)

    @property
    def supported_types(self) -> List[str]:
        return sorted(self.readers)

    def read(self, path: Path, mime_type: str) -> Metadata:
        """
        Read metadata for a file.

        Args:
            path: File on disk
            mime_type: Its content type

        Returns:
            Metadata for the file

        Raises:
            MetadataNotRecognized: If no reader handles the type or the
                reader cannot parse the file
        """
        reader = self.readers.get(mime_type)
        if reader is None:
            raise MetadataNotRecognized(f"No metadata reader for {mime_type}")
        return reader(path)

    def attach(self, path: Path, mime_type: str) -> Metadata:
        """Like read(), but answers NOOPMetadata for unrecognized files."""
        try:
            return self.read(path, mime_type)
        except MetadataNotRecognized as e:
            logger.debug(f"Metadata not recognized for {path}: {e}")
            return NOOPMetadata()
