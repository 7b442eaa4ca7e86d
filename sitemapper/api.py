"""REST entry point aggregating the sitemap services."""
from __future__ import annotations

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from sitemapper.services.sitemap import SitemapContainer, build_sitemap_container
from sitemapper.services.sitemap.api import configure_cors, include_routes
from sitemapper.settings import get_api_bind_host, get_api_port


def create_app(container: SitemapContainer | None = None) -> FastAPI:
    """Create the FastAPI application with every service route configured."""

    container = container or build_sitemap_container()
    app = FastAPI(
        title="Sitemapper API",
        version="1.0.0",
        description=(
            "Manages the segmented sitemap inventory of the site and "
            "regenerates its artifacts."
        ),
    )
    app.state.container = container

    configure_cors(app)
    include_routes(app, container)

    @app.get("/health", tags=["Health"])
    def health() -> dict:
        return {"status": "ok"}

    return app


def run() -> None:
    """Run the aggregated API using Uvicorn."""

    load_dotenv()
    uvicorn.run(
        "sitemapper.api:create_app",
        host=get_api_bind_host(),
        port=get_api_port(),
        factory=True,
    )


__all__ = ["create_app", "run"]
