"""PyView web adapter serving the shared location map."""

from __future__ import annotations

import logging
from typing import Any

import uvicorn
from markupsafe import Markup
from pyview import PyView
from pyview.template import defaultRootTemplate
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from live_locations.adapters.config import AppConfig
from live_locations.domain.ports import DisplayAdapter, LocationSharingService

from .broadcasters import PubSubMessagePublisher
from .rate_limit_middleware import RateLimitMiddleware
from .servers import StaticFileServer
from .views.map import create_map_live_view

logger = logging.getLogger(__name__)

LEAFLET_VERSION = "1.9.4"

HEAD_ASSETS = Markup(
    f'<link rel="stylesheet" href="https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/leaflet.css">'
    '<link rel="stylesheet" href="/static/css/map.css">'
    f'<script src="https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/leaflet.js"></script>'
    '<script src="/static/js/location_map.js"></script>'
)


class PyViewWebAdapter(DisplayAdapter):
    """Runs the map LiveView, the roster API and health check under uvicorn."""

    def __init__(
        self,
        service: LocationSharingService,
        publisher: PubSubMessagePublisher,
        config: AppConfig,
    ) -> None:
        """Initialize the web adapter.

        Args:
            service: The presence core; started and stopped with the server.
            publisher: Publisher the LiveViews subscribe their sockets through.
            config: Application configuration.
        """
        if not isinstance(config, AppConfig):
            raise TypeError("config must be an AppConfig instance")
        if not callable(getattr(service, "roster_summary", None)):
            raise TypeError("service must implement LocationSharingService protocol")

        self.service = service
        self.publisher = publisher
        self.config = config
        self._server: uvicorn.Server | None = None

    def build_app(self) -> Any:
        """Assemble the PyView app with its routes and middleware."""
        app = PyView()
        app.rootTemplate = defaultRootTemplate(
            title=self.config.title,
            title_suffix="",
            css=HEAD_ASSETS,
        )

        app.add_live_view("/", create_map_live_view(self.service, self.publisher, self.config))

        async def roster(_request: Any) -> Response:
            """Current roster with presence counts."""
            return JSONResponse(self.service.roster_summary().model_dump(by_alias=True))

        async def healthz(_request: Any) -> Response:
            """Health check endpoint for load balancers and monitoring."""
            return Response(content="Ok", media_type="text/plain")

        app.routes.append(Route("/api/roster", roster, methods=["GET"]))
        app.routes.append(Route("/healthz", healthz, methods=["GET"]))

        StaticFileServer().register_routes(app)

        return RateLimitMiddleware(app, requests_per_minute=self.config.rate_limit_per_minute)

    async def start(self) -> None:
        """Start the presence service and serve until the server exits."""
        app = self.build_app()
        await self.service.start()

        server_config = uvicorn.Config(
            app,
            host=self.config.host,
            port=self.config.port,
            log_level="info",
        )
        self._server = uvicorn.Server(server_config)
        logger.info(f"Serving live locations on http://{self.config.host}:{self.config.port}")
        try:
            await self._server.serve()
        finally:
            await self.service.stop()

    async def stop(self) -> None:
        """Stop the web server and the presence service."""
        if self._server:
            self._server.should_exit = True
        await self.service.stop()
