"""Filesystem-backed catalog store.

The directory tree is re-read on every call. Nothing is cached, so the
catalog always reflects what is on disk right now.
"""

import logging
import os
import stat
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from dircat.mime import (
    DEFAULT_REGISTRY,
    REL_ACQUISITION,
    REL_SUBSECTION,
    REL_THUMBNAIL,
    MimeRegistry,
)
from dircat.storage.base import (
    CatalogEntry,
    CatalogPathError,
    CoverImage,
    NodeKind,
    StoredFile,
)
from dircat.storage.covers import CoverExtractor
from dircat.storage.metadata import MetadataProvider, NOOPMetadata
from dircat.storage import paths

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."


def classify(path: Union[str, Path]) -> NodeKind:
    """
    Classify a filesystem path.

    Args:
        path: Absolute path, already resolved

    Returns:
        LEAF for anything that is not a directory, NAVIGATION for a directory
        with at least one subdirectory, ACQUISITION for any other directory
        (including an empty one), NOT_EXISTS when it cannot be read
    """
    try:
        st = os.stat(path)
    except OSError as e:
        logger.debug(f"classify: cannot stat {path}: {e}")
        return NodeKind.NOT_EXISTS

    if not stat.S_ISDIR(st.st_mode):
        return NodeKind.LEAF

    try:
        with os.scandir(path) as it:
            for child in it:
                if _is_dir(child):
                    return NodeKind.NAVIGATION
    except OSError as e:
        logger.warning(f"classify: cannot read directory {path}: {e}")
        return NodeKind.NOT_EXISTS

    return NodeKind.ACQUISITION


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def should_skip(name: str, is_directory: bool, registry: MimeRegistry) -> bool:
    """Hidden names are always skipped; files only when the format is unsupported."""
    if name.startswith(HIDDEN_PREFIX):
        return True
    if is_directory:
        return False
    return not registry.is_supported(os.path.splitext(name)[1])


def mime_type_for(name: str, kind: NodeKind, registry: MimeRegistry) -> str:
    if kind.is_directory:
        return kind.content_type
    return registry.type_for(name)


def rel_for(name: str, kind: NodeKind, registry: MimeRegistry) -> str:
    if kind.is_directory:
        return REL_SUBSECTION
    if registry.is_image(os.path.splitext(name)[1]):
        return REL_THUMBNAIL
    return REL_ACQUISITION


def sort_entries(entries: List[CatalogEntry]) -> List[CatalogEntry]:
    """Order by creator, then filename. Entries without a creator come first."""
    return sorted(entries, key=lambda e: (e.creator, e.filename))


def list_entries(
    directory: Union[str, Path],
    registry: MimeRegistry = DEFAULT_REGISTRY,
    provider: Optional[MetadataProvider] = None,
    root: Optional[Union[str, Path]] = None,
) -> List[CatalogEntry]:
    """
    List the visible children of a directory.

    Never raises: a directory that cannot be read lists as empty.

    Args:
        directory: Resolved directory path
        registry: MIME registry deciding which files are shown
        provider: Metadata reader dispatch
        root: Trusted root; children whose symlinks lead outside it are
            left out. Defaults to the directory itself.

    Returns:
        Entries sorted by creator then filename
    """
    provider = provider or MetadataProvider()
    directory = Path(directory)
    entries: List[CatalogEntry] = []

    try:
        with os.scandir(directory) as it:
            children = list(it)
        trusted_root = Path(root if root is not None else directory).resolve(strict=True)
    except OSError as e:
        logger.warning(f"list: cannot read directory {directory}: {e}")
        return []

    for child in children:
        if should_skip(child.name, _is_dir(child), registry):
            continue

        child_path = _contained_child(directory / child.name, trusted_root)
        if child_path is None:
            continue

        kind = classify(child_path)
        if kind is NodeKind.NOT_EXISTS:
            logger.debug(f"list: skipping vanished or unreadable {child_path}")
            continue

        try:
            mtime = child.stat().st_mtime
        except OSError as e:
            logger.debug(f"list: cannot stat {child_path}: {e}")
            continue

        mime_type = mime_type_for(child.name, kind, registry)
        if kind is NodeKind.LEAF:
            metadata = provider.attach(child_path, mime_type)
        else:
            metadata = NOOPMetadata()

        entry = CatalogEntry(
            filename=child.name,
            mime_type=mime_type,
            rel=rel_for(child.name, kind, registry),
            updated=datetime.fromtimestamp(mtime).astimezone(),
            kind=kind,
            metadata=metadata,
        )
        entries.append(entry)

    return sort_entries(entries)


def _contained_child(path: Path, trusted_root: Path) -> Optional[Path]:
    """Canonical form of a child, or None when it is broken or leaves the root."""
    try:
        canonical = path.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        logger.debug(f"list: skipping unresolvable {path}: {e}")
        return None

    if not paths.is_within(canonical, trusted_root):
        logger.debug(f"list: skipping {path}, it resolves outside the catalog root")
        return None
    return canonical


class DirectoryStore:
    """Catalog view of a directory tree rooted at a trusted root.

    All public methods take client-relative paths and fail closed: a path
    that cannot be resolved inside the root behaves as if it did not exist.
    """

    def __init__(
        self,
        root: Union[str, Path],
        registry: MimeRegistry = DEFAULT_REGISTRY,
        provider: Optional[MetadataProvider] = None,
        covers: Optional[CoverExtractor] = None,
    ):
        """Initialize the store.

        Args:
            root: Catalog root directory
            registry: MIME registry built at startup
            provider: Metadata readers
            covers: Cover extractor

        Raises:
            InvalidRootError: If the root is missing or not a directory
        """
        self.root = paths.canonical_root(root)
        self.registry = registry
        self.provider = provider or MetadataProvider()
        self.covers = covers or CoverExtractor()

    def resolve(self, path: str) -> Optional[Path]:
        """Resolve a client path, or None (logged) when it is not safe."""
        try:
            return paths.resolve(path, self.root)
        except CatalogPathError as e:
            logger.info(f"Rejected path {path!r}: {e}")
            return None

    def node_kind(self, path: str) -> NodeKind:
        resolved = self.resolve(path)
        if resolved is None:
            return NodeKind.NOT_EXISTS
        return classify(resolved)

    def list(self, path: str) -> List[CatalogEntry]:
        resolved = self.resolve(path)
        if resolved is None:
            return []
        return list_entries(resolved, self.registry, self.provider, root=self.root)

    def file(self, path: str) -> Optional[StoredFile]:
        """Leaf file to stream, or None if the path is not a readable file."""
        resolved = self.resolve(path)
        if resolved is None:
            return None

        try:
            st = resolved.stat()
        except OSError as e:
            logger.warning(f"file: cannot stat {resolved}: {e}")
            return None

        if not resolved.is_file():
            return None

        return StoredFile(
            path=resolved,
            content_type=self.registry.type_for(resolved.name),
            content_length=st.st_size,
        )

    def _book_path(self, path: str) -> Optional[Path]:
        if not self.registry.is_book(os.path.splitext(path)[1]):
            return None
        resolved = self.resolve(path)
        if resolved is None or not self.covers.supports(resolved):
            return None
        return resolved

    def cover(self, path: str) -> Optional[CoverImage]:
        """Cover of the book at path as JPEG, or None."""
        resolved = self._book_path(path)
        if resolved is None:
            return None
        return self.covers.cover(resolved)

    def thumbnail(self, path: str) -> Optional[CoverImage]:
        """Thumbnail of the book at path as JPEG, or None."""
        resolved = self._book_path(path)
        if resolved is None:
            return None
        return self.covers.thumbnail(resolved)
