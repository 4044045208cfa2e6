"""
OPDS 1.x feed documents.

A Feed is a plain value object; to_xml() renders it as Atom with the OPDS,
Dublin Core and OpenSearch namespaces declared.

OPDS Spec: https://specs.opds.io/opds-1.2
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from lxml import etree


ATOM_NS = "http://www.w3.org/2005/Atom"
DC_NS = "http://purl.org/dc/terms/"
OPDS_NS = "http://opds-spec.org/2010/catalog"
OPENSEARCH_NS = "http://a9.com/-/spec/opensearch/1.1/"

NSMAP = {
    None: ATOM_NS,
    "dc": DC_NS,
    "opds": OPDS_NS,
    "opensearch": OPENSEARCH_NS,
}


def format_datetime(dt: Optional[datetime] = None) -> str:
    """Format a datetime for Atom (RFC 3339 with UTC offset)."""
    if dt is None:
        dt = datetime.now()
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.isoformat(timespec="seconds")


# Control characters, lone surrogates (undecodable filename bytes) and the
# two noncharacters XML 1.0 forbids
_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
REPLACEMENT_CHAR = "\ufffd"


def xml_safe(text: str) -> str:
    """Replace characters XML cannot carry with U+FFFD."""
    return _XML_INVALID.sub(REPLACEMENT_CHAR, text)


def _atom(tag: str) -> str:
    return f"{{{ATOM_NS}}}{tag}"


def _sub(parent: etree._Element, tag: str, text: Optional[str] = None, **attrs) -> etree._Element:
    el = etree.SubElement(parent, tag, {k: xml_safe(v) for k, v in attrs.items() if v})
    if text is not None:
        el.text = xml_safe(text)
    return el


@dataclass
class Link:
    href: str
    rel: str = ""
    type: str = ""
    title: str = ""

    def append_to(self, parent: etree._Element) -> None:
        _sub(parent, _atom("link"), rel=self.rel, href=self.href, type=self.type, title=self.title)


@dataclass
class Author:
    name: str
    uri: str = ""

    def append_to(self, parent: etree._Element) -> None:
        el = _sub(parent, _atom("author"))
        _sub(el, _atom("name"), self.name)
        if self.uri:
            _sub(el, _atom("uri"), self.uri)


@dataclass
class Text:
    """Body of a <summary> or <content> element."""
    content: str
    type: str = "text"


@dataclass
class Entry:
    """One catalog item."""
    title: str
    id: str
    updated: datetime
    links: List[Link] = field(default_factory=list)
    authors: List[Author] = field(default_factory=list)
    summary: Optional[Text] = None
    content: Optional[Text] = None
    language: str = ""

    def append_to(self, parent: etree._Element) -> None:
        el = _sub(parent, _atom("entry"))
        _sub(el, _atom("title"), self.title)
        _sub(el, _atom("id"), self.id)
        _sub(el, _atom("updated"), format_datetime(self.updated))
        for link in self.links:
            link.append_to(el)
        for author in self.authors:
            author.append_to(el)
        if self.summary is not None:
            _sub(el, _atom("summary"), self.summary.content, type=self.summary.type)
        if self.content is not None:
            _sub(el, _atom("content"), self.content.content, type=self.content.type)
        if self.language:
            _sub(el, f"{{{DC_NS}}}language", self.language)


@dataclass
class Feed:
    """An OPDS catalog document.

    Attributes:
        title: Feed title
        id: Feed id (the requested path)
        kind: OPDS content type of the document (navigation or acquisition)
        updated: Generation time
        links: Feed level links (start, self, ...)
        entries: Ordered catalog items
    """
    title: str
    id: str
    kind: str
    updated: datetime = field(default_factory=lambda: datetime.now().astimezone())
    subtitle: str = ""
    links: List[Link] = field(default_factory=list)
    entries: List[Entry] = field(default_factory=list)

    def add_entry(self, entry: Entry) -> None:
        self.entries.append(entry)

    def find_link(self, rel: str) -> Optional[Link]:
        for link in self.links:
            if link.rel == rel:
                return link
        return None

    def to_element(self) -> etree._Element:
        root = etree.Element(_atom("feed"), nsmap=NSMAP)
        _sub(root, _atom("title"), self.title)
        _sub(root, _atom("id"), self.id)
        _sub(root, _atom("updated"), format_datetime(self.updated))
        if self.subtitle:
            _sub(root, _atom("subtitle"), self.subtitle)
        for link in self.links:
            link.append_to(root)
        for entry in self.entries:
            entry.append_to(root)
        return root

    def to_xml(self, pretty_print: bool = False) -> bytes:
        """
        Serialize the feed.

        Characters XML cannot carry are written as U+FFFD.
        """
        return etree.tostring(
            self.to_element(),
            xml_declaration=True,
            encoding="utf-8",
            pretty_print=pretty_print,
        )
