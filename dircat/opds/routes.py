"""
OPDS catalog routes.

Every path under the mount prefix maps straight onto the catalog root:
directories come back as navigation or acquisition feeds, files as raw
bytes, and the "/cover" and "/thumbnail" suffixes return JPEG images.

Compatible with e-reader apps like KOReader, Foliate, Moon+ Reader,
Marvin and Thorium Reader.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, Response

from dircat.mime import OPDS_NAVIGATION_MIME
from dircat.opds.builder import CatalogBuilder
from dircat.storage import DirectoryStore, NodeKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OPDS"])

COVER_SUFFIX = "/cover"
THUMBNAIL_SUFFIX = "/thumbnail"


# Catalog references (set by server.py)
_store: Optional[DirectoryStore] = None
_builder: Optional[CatalogBuilder] = None


def set_catalog(store: DirectoryStore, builder: CatalogBuilder):
    """Set the store and feed builder used by the OPDS routes."""
    global _store, _builder
    _store = store
    _builder = builder


def get_store() -> DirectoryStore:
    if _store is None:
        raise HTTPException(status_code=500, detail="Catalog not initialized")
    return _store


def get_builder() -> CatalogBuilder:
    if _builder is None:
        raise HTTPException(status_code=500, detail="Catalog not initialized")
    return _builder


def _client_path(path: str) -> str:
    return "/" + path.strip("/")


def serve_catalog(path: str) -> Response:
    """Serve a file, a feed, or 404 for a client path."""
    store = get_store()
    kind = store.node_kind(path)

    if kind is NodeKind.LEAF:
        stored = store.file(path)
        if stored is None:
            raise HTTPException(status_code=404, detail="File not found")
        return FileResponse(path=stored.path, media_type=stored.content_type)

    if kind is NodeKind.NOT_EXISTS:
        raise HTTPException(status_code=404, detail="Not found")

    feed = get_builder().build(kind, path, store.list(path))
    try:
        content = feed.to_xml()
    except (ValueError, TypeError) as e:
        logger.error(f"Cannot serialize feed for {path}: {e}")
        raise HTTPException(status_code=500, detail="Cannot render catalog")

    return Response(content=content, media_type=feed.kind)


def serve_cover(path: str) -> Response:
    cover = get_store().cover(path)
    if cover is None:
        raise HTTPException(status_code=404, detail="Cover not found")
    return Response(content=cover.content, media_type=cover.content_type)


def serve_thumbnail(path: str) -> Response:
    thumbnail = get_store().thumbnail(path)
    if thumbnail is None:
        raise HTTPException(status_code=404, detail="Thumbnail not found")
    return Response(content=thumbnail.content, media_type=thumbnail.content_type)


# HEAD probes are registered first so GET routes never answer them
@router.head("")
@router.head("/{path:path}")
def opds_head(path: str = ""):
    """Answer catalog probes with the navigation type and no body."""
    return Response(status_code=200, media_type=OPDS_NAVIGATION_MIME)


@router.get("", response_class=Response)
def opds_root():
    """Catalog root."""
    return serve_catalog("/")


@router.get("/{path:path}", response_class=Response)
def opds_path(path: str):
    """
    Any path below the root.

    Paths ending in /cover or /thumbnail select the image variants of the
    book in front of the suffix.
    """
    client_path = _client_path(path)

    if client_path.endswith(COVER_SUFFIX):
        return serve_cover(client_path[: -len(COVER_SUFFIX)])
    if client_path.endswith(THUMBNAIL_SUFFIX):
        return serve_thumbnail(client_path[: -len(THUMBNAIL_SUFFIX)])

    return serve_catalog(client_path)
