"""
Request - thin ASGI request wrapper used by the routing layer.

Besides the usual accessors it tracks ``base_path``, the part of the path
consumed by the routers the request has been mounted through, so that
sub-routers match against the remainder only.
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qs

from .faults import Fault, FaultDomain


# ============================================================================
# Request Faults
# ============================================================================

class RequestFault(Fault):
    """Base class for request parsing faults."""
    domain = FaultDomain.FLOW
    status = 400

    def __init__(self, code: str, message: str, **metadata):
        super().__init__(code=code, message=message, public=True, metadata=metadata)


class InvalidJSON(RequestFault):
    """Request body is not valid JSON."""

    def __init__(self, message: str = "Invalid JSON", **metadata):
        super().__init__("INVALID_JSON", message, **metadata)


class ClientDisconnect(RequestFault):
    """Client went away before the body was fully read."""

    def __init__(self, message: str = "Client disconnected", **metadata):
        super().__init__("CLIENT_DISCONNECT", message, **metadata)


# ============================================================================
# Request
# ============================================================================

class Request:
    """
    HTTP request bound to one ASGI connection.

    Attributes:
        scope: ASGI scope dict
        state: Per-request scratch space shared by middleware and handlers
        params: Path parameters matched by the routers so far
        base_path: Path prefix consumed by enclosing mounts
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Optional[Callable[[], Awaitable[dict]]] = None,
    ):
        self.scope = scope
        self._receive = receive
        self.state: Dict[str, Any] = {}
        self.params: Dict[str, Any] = {}
        self.base_path = ""

        self._body: Optional[bytes] = None
        self._json: Any = None
        self._query: Optional[Dict[str, List[str]]] = None
        self._headers: Optional[Dict[str, str]] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        """Request path (decoded)."""
        return self.scope.get("path", "/")

    @property
    def route_path(self) -> str:
        """Path relative to the current mount point."""
        remainder = self.path[len(self.base_path):]
        if not remainder.startswith("/"):
            remainder = "/" + remainder
        return remainder

    @property
    def query_string(self) -> str:
        """Raw query string."""
        return self.scope.get("query_string", b"").decode("utf-8")

    @property
    def client(self) -> Optional[tuple]:
        """Client address (host, port)."""
        return self.scope.get("client")

    # ========================================================================
    # Query Parameters & Headers
    # ========================================================================

    @property
    def query(self) -> Dict[str, List[str]]:
        """Parsed query parameters (every value kept)."""
        if self._query is None:
            self._query = parse_qs(self.query_string, keep_blank_values=True)
        return self._query

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value of a query parameter."""
        values = self.query.get(name)
        return values[0] if values else default

    @property
    def headers(self) -> Dict[str, str]:
        """Headers keyed by lower-cased name; repeated headers are comma-joined."""
        if self._headers is None:
            headers: Dict[str, str] = {}
            for raw_name, raw_value in self.scope.get("headers", ()):
                name = raw_name.decode("latin-1").lower()
                value = raw_value.decode("latin-1")
                headers[name] = f"{headers[name]}, {value}" if name in headers else value
            self._headers = headers
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name.lower(), default)

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """Read full request body (idempotent)."""
        if self._body is not None:
            return self._body

        if self._receive is None:
            self._body = b""
            return self._body

        chunks = []
        more_body = True
        while more_body:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                raise ClientDisconnect()
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)

        self._body = b"".join(chunks)
        return self._body

    async def text(self, encoding: str = "utf-8") -> str:
        """Read request body as text."""
        return (await self.body()).decode(encoding)

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        Raises:
            InvalidJSON: If the body is not valid UTF-8 JSON
        """
        if self._json is not None:
            return self._json

        body_bytes = await self.body()
        try:
            self._json = stdlib_json.loads(body_bytes.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidJSON(f"Invalid UTF-8 in JSON payload: {e}")
        except stdlib_json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid JSON: {e}")

        return self._json

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
