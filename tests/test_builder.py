"""
Tests for feed assembly and Atom serialization.
"""

from datetime import datetime, timezone

import pytest
from lxml import etree

from dircat.mime import (
    OPDS_ACQUISITION_MIME,
    OPDS_NAVIGATION_MIME,
    REL_ACQUISITION,
    REL_IMAGE,
    REL_SUBSECTION,
    REL_THUMBNAIL,
)
from dircat.opds.builder import (
    CatalogBuilder,
    is_html,
    join_url,
    normalize_whitespace,
    render_description,
)
from dircat.opds.feed import ATOM_NS, DC_NS, Feed, format_datetime, xml_safe
from dircat.storage import CatalogEntry, DirectoryStore, Metadata, NodeKind, NOOPMetadata

NS = {"atom": ATOM_NS, "dc": DC_NS}
CONTROL = ("\f", "\t", "\r", "\n")

UPDATED = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def book(name="dune.epub", **metadata) -> CatalogEntry:
    return CatalogEntry(
        filename=name,
        mime_type="application/epub+zip",
        rel=REL_ACQUISITION,
        updated=UPDATED,
        metadata=Metadata(**metadata) if metadata else NOOPMetadata(),
    )


@pytest.fixture
def builder():
    return CatalogBuilder("/opds/v1")


def parse(feed: Feed):
    return etree.fromstring(feed.to_xml())


class TestTextRendering:
    """Summary and content bodies."""

    def test_normalize_whitespace(self):
        assert normalize_whitespace("  Classics\nRomance\r\n\tDrama  ") == "Classics Romance Drama"

    def test_is_html(self):
        assert is_html("  \n<p>Hi</p>")
        assert not is_html("Plain <b>text</b>")
        assert not is_html("")

    def test_html_description_gets_line_breaks(self):
        text = render_description("<p>First line\nsecond line</p>\r\n<p>Next\tpara</p>")
        assert text.type == "html"
        assert text.content == "<p>First line<br/>second line</p><br/><p>Nextpara</p>"
        assert not any(c in text.content for c in CONTROL)

    def test_plain_description_collapses_newlines(self):
        text = render_description("  A desert planet.\nSpice\f flows.\r\n ")
        assert text.type == "text"
        assert text.content == "A desert planet. Spice flows."
        assert not any(c in text.content for c in CONTROL)

    def test_long_text_is_not_truncated(self):
        long = "word " * 500
        assert render_description(long).content == long.strip()


class TestJoinUrl:

    def test_joins_and_encodes(self):
        assert join_url("/opds/v1", "/sci fi/", "dune #1.epub") == "/opds/v1/sci%20fi/dune%20%231.epub"

    def test_root_path(self):
        assert join_url("/opds/v1", "/") == "/opds/v1"


class TestCatalogBuilder:

    def test_feed_level_fields(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/fiction", [])

        assert feed.title == "Catalog in /fiction"
        assert feed.id == "/fiction"
        assert feed.kind == OPDS_ACQUISITION_MIME

        start = feed.find_link("start")
        assert start.href == "/opds/v1/"
        assert start.type == OPDS_NAVIGATION_MIME

        self_link = feed.find_link("self")
        assert self_link.href == "/opds/v1/fiction"
        assert self_link.type == OPDS_ACQUISITION_MIME

    def test_navigation_kind(self, builder):
        feed = builder.build(NodeKind.NAVIGATION, "/", [])
        assert feed.kind == OPDS_NAVIGATION_MIME
        assert feed.find_link("self").href == "/opds/v1"

    def test_rejects_non_directory_kinds(self, builder):
        with pytest.raises(ValueError):
            builder.build(NodeKind.LEAF, "/fiction/dune.epub", [])

    def test_entry_links_and_id(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/sci fi", [book("dune 1.epub")])
        (entry,) = feed.entries

        assert entry.id == "/opds/v1/sci%20fi/dune%201.epub"
        assert entry.title == "dune 1.epub"
        assert entry.updated == UPDATED

        (link,) = entry.links
        assert link.href == "/opds/v1/sci%20fi/dune%201.epub"
        assert link.type == "application/epub+zip"
        assert link.rel == REL_ACQUISITION
        assert link.title == "dune 1.epub"

    def test_ids_are_percent_encoded(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/sci fi/#1", [book("a b.epub")])

        assert feed.id == "/sci%20fi/%231"
        assert feed.entries[0].id == "/opds/v1/sci%20fi/%231/a%20b.epub"
        assert " " not in feed.entries[0].id

    def test_undecodable_filename_bytes(self, builder):
        # os.scandir hands back bytes that are not UTF-8 as lone surrogates
        name = b"caf\xe9.epub".decode("utf-8", "surrogateescape")
        feed = builder.build(NodeKind.ACQUISITION, "/", [book(name)])

        entry = feed.entries[0]
        assert entry.links[0].href == "/opds/v1/caf%E9.epub"
        assert entry.id == "/opds/v1/caf%E9.epub"
        root = parse(feed)
        assert root.findtext("atom:entry/atom:title", namespaces=NS) == "caf\ufffd.epub"

    def test_ids_are_deterministic(self, builder):
        entries = [book("a.epub"), book("b.epub")]
        first = [e.id for e in builder.build(NodeKind.ACQUISITION, "/x", entries).entries]
        second = [e.id for e in builder.build(NodeKind.ACQUISITION, "/x", list(reversed(entries))).entries]
        assert sorted(first) == sorted(second)
        assert len(set(first)) == 2

    def test_metadata_title_overrides_name_but_not_href(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/fiction", [book(title="Dune")])
        (entry,) = feed.entries
        assert entry.title == "Dune"
        assert entry.links[0].title == "Dune"
        assert entry.links[0].href.endswith("/dune.epub")

    def test_cover_and_thumbnail_links(self, builder):
        feed = builder.build(
            NodeKind.ACQUISITION, "/fiction", [book(has_cover=True, has_thumbnail=True)]
        )
        _, cover, thumb = feed.entries[0].links

        assert cover.rel == REL_IMAGE
        assert cover.href == "/opds/v1/fiction/dune.epub/cover"
        assert cover.type == "image/jpeg"

        assert thumb.rel == REL_THUMBNAIL
        assert thumb.href == "/opds/v1/fiction/dune.epub/thumbnail"
        assert thumb.type == "image/jpeg"

    def test_no_image_links_without_cover(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/fiction", [book()])
        assert len(feed.entries[0].links) == 1

    def test_author(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/", [book(creator="Frank Herbert")])
        (author,) = feed.entries[0].authors
        assert author.name == "Frank Herbert"

    def test_no_author_without_creator(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/", [book()])
        assert feed.entries[0].authors == []

    def test_subject_becomes_summary(self, builder):
        feed = builder.build(
            NodeKind.ACQUISITION, "/", [book(subject=" Classics\nRomance ", description="ignored")]
        )
        entry = feed.entries[0]
        assert entry.summary.content == "Classics Romance"
        assert entry.summary.type == "text"
        assert entry.content is None

    def test_description_becomes_content(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/", [book(description="<p>Hi\nthere</p>")])
        entry = feed.entries[0]
        assert entry.summary is None
        assert entry.content.type == "html"
        assert entry.content.content == "<p>Hi<br/>there</p>"

    def test_language(self, builder):
        feed = builder.build(NodeKind.ACQUISITION, "/", [book(language="fr")])
        assert feed.entries[0].language == "fr"

    def test_directory_entries(self, builder):
        folder = CatalogEntry(
            filename="fiction",
            mime_type=OPDS_ACQUISITION_MIME,
            rel=REL_SUBSECTION,
            updated=UPDATED,
            kind=NodeKind.ACQUISITION,
        )
        feed = builder.build(NodeKind.NAVIGATION, "/", [folder])
        link = feed.entries[0].links[0]
        assert link.href == "/opds/v1/fiction"
        assert link.rel == REL_SUBSECTION
        assert link.type == OPDS_ACQUISITION_MIME
        assert feed.entries[0].id == "/opds/v1/fiction"

    def test_custom_title(self):
        feed = CatalogBuilder("/catalog", title="Books in").build(NodeKind.NAVIGATION, "/", [])
        assert feed.title == "Books in /"
        assert feed.find_link("start").href == "/catalog/"


class TestSerialization:
    """Atom XML output."""

    def test_namespaces_and_declaration(self, builder):
        xml = builder.build(NodeKind.NAVIGATION, "/", []).to_xml()
        assert xml.startswith(b"<?xml version='1.0' encoding='utf-8'?>")

        root = etree.fromstring(xml)
        assert root.tag == f"{{{ATOM_NS}}}feed"
        assert root.nsmap[None] == ATOM_NS
        assert root.nsmap["dc"] == DC_NS
        assert root.nsmap["opds"] == "http://opds-spec.org/2010/catalog"
        assert root.nsmap["opensearch"] == "http://a9.com/-/spec/opensearch/1.1/"

    def test_full_entry(self, builder):
        entries = [
            book(
                title="Dune",
                creator="Frank Herbert",
                description="Line one\nline two",
                language="en",
                has_cover=True,
            )
        ]
        root = parse(builder.build(NodeKind.ACQUISITION, "/fiction", entries))

        assert root.findtext("atom:title", namespaces=NS) == "Catalog in /fiction"
        assert root.findtext("atom:id", namespaces=NS) == "/fiction"
        assert len(root.findall("atom:link", namespaces=NS)) == 2

        (entry,) = root.findall("atom:entry", namespaces=NS)
        assert entry.findtext("atom:title", namespaces=NS) == "Dune"
        assert entry.findtext("atom:id", namespaces=NS) == "/opds/v1/fiction/dune.epub"
        assert entry.findtext("atom:updated", namespaces=NS) == "2024-05-01T12:30:00+00:00"
        assert entry.findtext("atom:author/atom:name", namespaces=NS) == "Frank Herbert"
        assert entry.findtext("dc:language", namespaces=NS) == "en"

        content = entry.find("atom:content", namespaces=NS)
        assert content.get("type") == "text"
        assert content.text == "Line one line two"

        rels = [link.get("rel") for link in entry.findall("atom:link", namespaces=NS)]
        assert rels == [REL_ACQUISITION, REL_IMAGE]

    def test_html_content_is_escaped_text(self, builder):
        root = parse(builder.build(NodeKind.ACQUISITION, "/", [book(description="<b>Bold</b>\nmove")]))
        content = root.find("atom:entry/atom:content", namespaces=NS)
        assert content.get("type") == "html"
        assert content.text == "<b>Bold</b><br/>move"
        assert len(content) == 0

    def test_invalid_xml_characters_are_replaced(self, builder):
        entries = [
            book("bad\x00name.epub"),
            book("good.epub", title="Bad\x0bTitle", creator="A\x01B", description="x\x01y"),
        ]
        root = parse(builder.build(NodeKind.ACQUISITION, "/", entries))

        bad, good = root.findall("atom:entry", namespaces=NS)
        assert bad.findtext("atom:title", namespaces=NS) == "bad\ufffdname.epub"
        assert bad.find("atom:link", namespaces=NS).get("title") == "bad\ufffdname.epub"
        assert bad.find("atom:link", namespaces=NS).get("href") == "/opds/v1/bad%00name.epub"

        assert good.findtext("atom:title", namespaces=NS) == "Bad\ufffdTitle"
        assert good.findtext("atom:author/atom:name", namespaces=NS) == "A\ufffdB"
        assert good.findtext("atom:content", namespaces=NS) == "x\ufffdy"

    def test_xml_safe_keeps_valid_text(self):
        assert xml_safe("Tab\tnew\nline\r ünïcödé") == "Tab\tnew\nline\r ünïcödé"
        assert xml_safe("\x00\x08\x0c\ufffe") == "\ufffd" * 4

    def test_format_datetime(self):
        assert format_datetime(UPDATED) == "2024-05-01T12:30:00+00:00"
        assert format_datetime()[-6] in "+-"


class TestEndToEnd:

    def test_directory_of_two_books(self, tmp_path):
        from conftest import make_epub

        make_epub(tmp_path / "one.epub", title="One", author="A")
        make_epub(tmp_path / "two.epub", title="Two", author="B")

        store = DirectoryStore(tmp_path)
        kind = store.node_kind("/")
        feed = CatalogBuilder().build(kind, "/", store.list("/"))

        assert feed.kind == OPDS_ACQUISITION_MIME
        root = parse(feed)
        assert len(root.findall("atom:entry", namespaces=NS)) == 2
        assert [e.title for e in feed.entries] == ["One", "Two"]
