"""Control surface — JSON-lines request/response protocol over stdio."""

from grayctl.server.protocol import handle_line, handle_request
from grayctl.server.stdio import StdioServer

__all__ = ["StdioServer", "handle_line", "handle_request"]
