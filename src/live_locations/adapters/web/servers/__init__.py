"""HTTP servers for static assets."""

from .static_file_server import StaticFileServer, find_static_directory

__all__ = ["StaticFileServer", "find_static_directory"]
