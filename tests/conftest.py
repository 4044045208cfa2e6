"""Shared fixtures: book files written with the same libraries dircat reads them with."""

from io import BytesIO
from pathlib import Path
from typing import Optional

import pytest
from ebooklib import epub
from PIL import Image
from pypdf import PdfWriter


def image_bytes(fmt: str = "PNG", size=(60, 90), color=(200, 30, 30), mode: str = "RGB") -> bytes:
    """Solid color image in the given format."""
    img = Image.new(mode, size, color)
    out = BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def make_epub(
    path: Path,
    title: str = "A Book",
    author: Optional[str] = None,
    language: str = "en",
    description: Optional[str] = None,
    subject: Optional[str] = None,
    cover: Optional[bytes] = None,
    cover_name: str = "cover.png",
) -> Path:
    """Write a small but valid EPUB."""
    book = epub.EpubBook()
    book.set_identifier(f"urn:test:{path.stem}")
    book.set_title(title)
    book.set_language(language)
    if author:
        book.add_author(author)
    if description:
        book.add_metadata("DC", "description", description)
    if subject:
        book.add_metadata("DC", "subject", subject)
    if cover is not None:
        book.set_cover(cover_name, cover)

    chapter = epub.EpubHtml(title="Chapter 1", file_name="chap_01.xhtml", lang=language)
    chapter.content = f"<h1>{title}</h1><p>Once upon a time.</p>"
    book.add_item(chapter)

    book.toc = (chapter,)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]

    path.parent.mkdir(parents=True, exist_ok=True)
    epub.write_epub(str(path), book)
    return path


def make_pdf(path: Path, title: Optional[str] = None, author: Optional[str] = None,
             subject: Optional[str] = None) -> Path:
    """Write a one page PDF with a document info dictionary."""
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    info = {}
    if title:
        info["/Title"] = title
    if author:
        info["/Author"] = author
    if subject:
        info["/Subject"] = subject
    if info:
        writer.add_metadata(info)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        writer.write(f)
    return path


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG")


@pytest.fixture
def library(tmp_path, png_bytes):
    """A small catalog tree.

    Structure:
        books/
        ├── fiction/
        │   ├── dune.epub          (Frank Herbert, with cover)
        │   ├── emma.epub          (Jane Austen, no cover)
        │   └── .hidden.epub
        ├── science/
        │   └── physics/
        │       └── notes.pdf
        ├── empty/
        ├── readme.txt
        └── poster.png
    """
    root = tmp_path / "books"
    root.mkdir()

    make_epub(root / "fiction" / "dune.epub", title="Dune", author="Frank Herbert",
              description="Desert planet.\nSpice.", cover=png_bytes)
    make_epub(root / "fiction" / "emma.epub", title="Emma", author="Jane Austen",
              subject="Classics\nRomance")
    (root / "fiction" / ".hidden.epub").write_bytes(b"not really an epub")

    make_pdf(root / "science" / "physics" / "notes.pdf", title="Physics Notes", author="Ada")
    (root / "empty").mkdir()
    (root / "readme.txt").write_text("not a book")
    (root / "poster.png").write_bytes(png_bytes)

    return root
