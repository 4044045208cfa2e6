"""
dircat - serve a directory of ebooks as an OPDS catalog.

Main API:
    from pathlib import Path
    from dircat import DirectoryStore, CatalogBuilder

    store = DirectoryStore(Path("~/books").expanduser())

    kind = store.node_kind("/fiction")
    entries = store.list("/fiction")

    feed = CatalogBuilder("/opds/v1").build(kind, "/fiction", entries)
    xml_bytes = feed.to_xml()
"""

from .storage import DirectoryStore, NodeKind
from .opds.builder import CatalogBuilder

__version__ = "0.1.0"
__all__ = ["DirectoryStore", "NodeKind", "CatalogBuilder"]
