"""Storage layer: maps a directory tree onto catalog entries.

Architecture:
    - paths: resolve client paths safely inside the catalog root
    - directory: classify paths, list directories, DirectoryStore facade
    - metadata: per-format metadata readers (EPUB, PDF)
    - covers: cover and thumbnail extraction
"""

from dircat.storage.base import (
    CatalogEntry,
    CatalogPathError,
    CoverImage,
    InvalidRootError,
    NodeKind,
    PathNotFoundError,
    PathTraversalError,
    StoredFile,
)
from dircat.storage.metadata import Metadata, MetadataNotRecognized, MetadataProvider, NOOPMetadata
from dircat.storage.covers import CoverExtractor
from dircat.storage.directory import DirectoryStore, classify, list_entries

__all__ = [
    "CatalogEntry",
    "CatalogPathError",
    "CoverExtractor",
    "CoverImage",
    "DirectoryStore",
    "InvalidRootError",
    "Metadata",
    "MetadataNotRecognized",
    "MetadataProvider",
    "NOOPMetadata",
    "NodeKind",
    "PathNotFoundError",
    "PathTraversalError",
    "StoredFile",
    "classify",
    "list_entries",
]
