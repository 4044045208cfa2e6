"""Safe resolution of client paths against the catalog root."""

import os
from pathlib import Path, PurePosixPath
from typing import Union

from dircat.storage.base import InvalidRootError, PathNotFoundError, PathTraversalError


def canonical_root(root: Union[str, Path]) -> Path:
    """
    Get the absolute, symlink-free form of the catalog root.

    Args:
        root: Configured root directory

    Returns:
        Canonical root path

    Raises:
        InvalidRootError: If the root does not exist or is not a directory
    """
    try:
        resolved = Path(root).expanduser().absolute().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Cannot resolve catalog root {root}: {e}") from e

    if not resolved.is_dir():
        raise InvalidRootError(f"Catalog root is not a directory: {resolved}")
    return resolved


def clean_path(requested: str) -> str:
    """
    Lexically clean a client path into a relative POSIX path.

    Leading slashes are dropped so the result can always be joined onto the
    root, and "." / ".." segments are folded the way os.path.normpath does.
    A result of "." means the root itself.
    """
    parts = PurePosixPath("/", requested).parts[1:]
    return os.path.normpath("/".join(parts)) if parts else "."


def is_within(path: Path, root: Path) -> bool:
    """Component-wise containment check (so /books2 is not inside /books)."""
    return path == root or path.is_relative_to(root)


def resolve(requested: str, trusted_root: Path) -> Path:
    """
    Resolve a client path to a canonical path inside the trusted root.

    The path is joined onto the root, cleaned, canonicalized through any
    symlinks and then checked against the root. Lexical cleaning alone cannot
    see a symlink that points outside the root, hence the second check.

    Args:
        requested: Client-relative path, e.g. "/fiction/book.epub"
        trusted_root: Canonical root (see canonical_root)

    Returns:
        Canonical absolute path

    Raises:
        PathNotFoundError: If the target does not exist or a symlink is broken
        PathTraversalError: If the canonical target lies outside the root
    """
    joined = Path(os.path.normpath(trusted_root / clean_path(requested)))

    try:
        canonical = joined.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise PathNotFoundError(f"Cannot resolve {requested!r}: {e}") from e

    if not is_within(canonical, trusted_root):
        raise PathTraversalError(f"Path {requested!r} resolves outside the catalog root")

    return canonical
