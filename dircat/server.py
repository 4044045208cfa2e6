"""
Web server for dircat.

Mounts the OPDS routes on a FastAPI application serving one catalog root.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from dircat import __version__
from dircat.config import CatalogConfig, ServerConfig
from dircat.mime import MimeRegistry
from dircat.opds import routes
from dircat.opds.builder import CatalogBuilder
from dircat.storage import DirectoryStore

logger = logging.getLogger(__name__)


def normalize_prefix(prefix: str) -> str:
    """Mount prefix as "/a/b"; FastAPI needs a leading slash and no trailing one."""
    cleaned = prefix.strip().strip("/")
    if not cleaned:
        raise ValueError("The catalog prefix must not be empty")
    return "/" + cleaned


def create_store(catalog: CatalogConfig, root: Optional[Union[str, Path]] = None) -> DirectoryStore:
    """Build the store for a root, with the MIME registry fixed at startup."""
    registry = MimeRegistry.create(catalog.extra_types)
    return DirectoryStore(root if root is not None else catalog.root, registry=registry)


def create_app(
    root: Optional[Union[str, Path]] = None,
    catalog: Optional[CatalogConfig] = None,
    server: Optional[ServerConfig] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        root: Catalog root, overrides catalog.root
        catalog: Catalog settings
        server: Server settings (only the prefix is used here)

    Returns:
        FastAPI app serving the catalog under the configured prefix

    Raises:
        InvalidRootError: If the root does not exist or is not a directory
    """
    catalog = catalog or CatalogConfig()
    server = server or ServerConfig()
    prefix = normalize_prefix(server.prefix)

    store = create_store(catalog, root)
    builder = CatalogBuilder(prefix, title=catalog.title)
    routes.set_catalog(store, builder)

    app = FastAPI(
        title="dircat",
        description="OPDS catalog for a directory of ebooks",
        version=__version__,
    )
    app.include_router(routes.router, prefix=prefix)

    @app.get("/", include_in_schema=False)
    def index():
        return RedirectResponse(url=prefix)

    logger.info(f"Serving {store.root} at {prefix}")
    return app
