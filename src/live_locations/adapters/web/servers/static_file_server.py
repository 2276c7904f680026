"""Static file server implementation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from starlette.responses import FileResponse, Response
from starlette.routing import Route
from starlette.staticfiles import StaticFiles

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, MutableMapping

    from pyview import PyView

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=60, must-revalidate"


class StaticFileCacheApp:
    """ASGI app wrapper that adds cache headers to static file responses."""

    def __init__(self, static_files: StaticFiles) -> None:
        self.static_files = static_files

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[[], Awaitable[dict[str, Any]]],
        send: Callable[[MutableMapping[str, Any]], Awaitable[None]],
    ) -> None:
        async def send_with_cache_headers(message: MutableMapping[str, Any]) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                if not any(header[0].lower() == b"cache-control" for header in headers):
                    headers.append((b"cache-control", CACHE_CONTROL.encode("latin-1")))
                    message["headers"] = headers
            await send(message)

        await self.static_files(scope, receive, send_with_cache_headers)


def find_static_directory(candidates: list[Path] | None = None) -> Path | None:
    """Return the first existing static directory, checking cwd then the repo root."""
    paths = candidates or [
        Path.cwd() / "static",
        Path(__file__).parent.parent.parent.parent.parent.parent / "static",
    ]
    for path in paths:
        if path.is_dir():
            return path
    logger.warning(f"Static directory not found at any of: {[str(p) for p in paths]}")
    return None


class StaticFileServer:
    """Serves the map's JS/CSS and pyview's client bundle."""

    def __init__(self, static_path: Path | None = None) -> None:
        self.static_path = static_path

    def register_routes(self, app: PyView) -> None:
        """Register static file routes with the PyView app.

        The pyview client route is inserted first so it wins over the mount.
        """
        app.routes.insert(0, Route("/static/assets/app.js", self._serve_app_js))

        static_path = self.static_path or find_static_directory()
        if static_path is None:
            return
        app.mount("/static", StaticFileCacheApp(StaticFiles(directory=str(static_path))), name="static")
        logger.info(f"Mounted static files from {static_path} with 1-minute cache headers")

    async def _serve_app_js(self, _request: Any) -> Response:
        """Serve pyview's client JavaScript."""
        import pyview

        pyview_path = Path(pyview.__file__).parent
        for candidate in (
            pyview_path / "static" / "assets" / "app.js",
            pyview_path / "assets" / "js" / "app.js",
        ):
            if candidate.exists():
                response = FileResponse(str(candidate), media_type="application/javascript")
                response.headers["Cache-Control"] = CACHE_CONTROL
                return response

        logger.error(f"Could not find pyview client JS under {pyview_path}")
        return Response(
            content="// PyView client not found",
            media_type="application/javascript",
            status_code=404,
        )
