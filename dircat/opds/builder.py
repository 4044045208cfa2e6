"""Assembles directory listings into OPDS feeds."""

import posixpath
import re
from datetime import datetime
from typing import Iterable, Optional
from urllib.parse import quote

from dircat.mime import COVER_MIME, OPDS_NAVIGATION_MIME, REL_IMAGE, REL_THUMBNAIL
from dircat.opds.feed import Author, Entry, Feed, Link, Text
from dircat.storage.base import CatalogEntry, NodeKind

DEFAULT_PREFIX = "/opds/v1"
DEFAULT_TITLE = "Catalog in"

# Characters some readers choke on inside <content>
_CONTROL_CHARS = re.compile(r"[\f\t\r\n]")
_NEWLINES = re.compile(r"\r\n|\r|\n")


def normalize_whitespace(text: str) -> str:
    """Trim and collapse every whitespace run (newlines included) to one space."""
    return " ".join(text.split())


def is_html(text: str) -> bool:
    """Treat text as HTML when its first non-whitespace character is '<'."""
    return text.lstrip().startswith("<")


def render_description(description: str) -> Text:
    """
    Turn a book description into a <content> body.

    HTML keeps its line structure as <br/>; plain text has its newlines
    collapsed. Form feeds, tabs, carriage returns and newlines are removed
    from the result in both cases.
    """
    text = description.strip()
    if is_html(text):
        text = _NEWLINES.sub("<br/>", text)
        return Text(content=_CONTROL_CHARS.sub("", text), type="html")
    return Text(content=_CONTROL_CHARS.sub("", normalize_whitespace(text)), type="text")


def _quote(text: str, safe: str) -> str:
    # Undecodable filename bytes come back as their original octets
    return quote(text, safe=safe, errors="surrogateescape")


def join_url(*parts: str) -> str:
    """Join URL path parts and percent-encode the result."""
    segments = [p.strip("/") for p in parts if p and p.strip("/")]
    path = "/" + "/".join(segments)
    return _quote(path, safe="/")


class CatalogBuilder:
    """Builds Feed documents for directories.

    Args:
        prefix: URL path the catalog is mounted under, e.g. "/opds/v1"
        title: Text put in front of the path in feed titles
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX, title: str = DEFAULT_TITLE):
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.title = title

    def start_href(self) -> str:
        return self.prefix + "/"

    def self_href(self, path: str) -> str:
        return join_url(self.prefix, path)

    def request_path(self, path: str) -> str:
        """The path a client requested, prefix included, unencoded."""
        return posixpath.join(self.prefix or "/", path.lstrip("/")).rstrip("/") or "/"

    def build(
        self,
        kind: NodeKind,
        path: str,
        entries: Iterable[CatalogEntry],
        updated: Optional[datetime] = None,
    ) -> Feed:
        """
        Build the feed for a directory.

        Args:
            kind: NAVIGATION or ACQUISITION
            path: Client path of the directory
            entries: Ordered listing of the directory
            updated: Feed timestamp, defaults to now

        Returns:
            Feed whose kind is the document content type
        """
        if not kind.is_directory:
            raise ValueError(f"Cannot build a feed for a {kind.name} node")

        feed = Feed(
            title=f"{self.title} {path}",
            id=_quote(path, safe="/"),
            kind=kind.content_type,
            links=[
                Link(rel="start", href=self.start_href(), type=OPDS_NAVIGATION_MIME),
                Link(rel="self", href=self.self_href(path), type=kind.content_type),
            ],
        )
        if updated is not None:
            feed.updated = updated

        parent = self.request_path(path)
        for entry in entries:
            feed.add_entry(self.build_entry(entry, path, parent))

        return feed

    def build_entry(self, entry: CatalogEntry, path: str, parent: str) -> Entry:
        """Build one feed entry; ids and hrefs use the on-disk filename."""
        name = entry.filename
        title = entry.title
        metadata = entry.metadata

        item = Entry(
            title=title,
            id=posixpath.join(_quote(parent, safe="/"), _quote(name, safe="")),
            updated=entry.updated,
            links=[
                Link(
                    rel=entry.rel,
                    href=join_url(self.prefix, path, name),
                    type=entry.mime_type,
                    title=title,
                )
            ],
        )

        if metadata.has_cover:
            item.links.append(Link(
                rel=REL_IMAGE,
                href=join_url(self.prefix, path, name, "cover"),
                type=COVER_MIME,
            ))
        if metadata.has_thumbnail:
            item.links.append(Link(
                rel=REL_THUMBNAIL,
                href=join_url(self.prefix, path, name, "thumbnail"),
                type=COVER_MIME,
            ))

        if metadata.creator:
            item.authors.append(Author(name=metadata.creator))

        if metadata.subject:
            item.summary = Text(content=normalize_whitespace(metadata.subject), type="text")
        elif metadata.description:
            item.content = render_description(metadata.description)

        if metadata.language:
            item.language = metadata.language

        return item
