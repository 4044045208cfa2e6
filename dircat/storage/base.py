"""Value types shared by the storage layer.

Everything here is request-scoped: entries, files and covers are built fresh
for each request and dropped when it completes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from dircat.mime import OPDS_ACQUISITION_MIME, OPDS_NAVIGATION_MIME
from dircat.storage.metadata import Metadata, NOOPMetadata


class NodeKind(Enum):
    """Shape of a path in the catalog tree."""
    NOT_EXISTS = "not_exists"
    LEAF = "file"
    NAVIGATION = OPDS_NAVIGATION_MIME
    ACQUISITION = OPDS_ACQUISITION_MIME

    @property
    def is_directory(self) -> bool:
        return self in (NodeKind.NAVIGATION, NodeKind.ACQUISITION)

    @property
    def content_type(self) -> Optional[str]:
        """OPDS feed type for directory kinds, None otherwise."""
        return self.value if self.is_directory else None


@dataclass
class CatalogEntry:
    """One visible child of a listed directory.

    Attributes:
        filename: Name on disk, used for links and ordering
        mime_type: Content type of the file, or feed type for directories
        rel: OPDS link relation for the primary link
        updated: Modification time of the child
        kind: Classification of the child
        metadata: Format metadata (NOOPMetadata when unrecognized)
    """
    filename: str
    mime_type: str
    rel: str
    updated: datetime
    kind: NodeKind = NodeKind.LEAF
    metadata: Metadata = field(default_factory=NOOPMetadata)

    @property
    def title(self) -> str:
        """Display name: the metadata title when there is one."""
        return self.metadata.title or self.filename

    @property
    def creator(self) -> str:
        return self.metadata.creator


@dataclass(frozen=True)
class StoredFile:
    """A leaf file ready to be streamed."""
    path: Path
    content_type: str
    content_length: int


@dataclass(frozen=True)
class CoverImage:
    """A re-encoded cover or thumbnail."""
    content: bytes
    content_type: str

    @property
    def content_length(self) -> int:
        return len(self.content)


class CatalogPathError(Exception):
    """Error resolving a catalog path."""
    pass


class PathTraversalError(CatalogPathError):
    """Path escapes the trusted root."""
    pass


class PathNotFoundError(CatalogPathError):
    """Path does not exist or cannot be canonicalized."""
    pass


class InvalidRootError(Exception):
    """The configured catalog root is unusable."""
    pass
