"""OPDS catalog documents and routes."""

from dircat.opds.feed import Author, Entry, Feed, Link, Text
from dircat.opds.builder import CatalogBuilder

__all__ = ["Author", "CatalogBuilder", "Entry", "Feed", "Link", "Text"]
