"""
Response - mutable, write-once HTTP response.

Handlers receive the response object alongside the request and write to it
(``send``, ``json``, ``text``, ``redirect``, ``end``). The first write marks the
response as sent; the application flushes it to the ASGI server once the
dispatch chain has finished.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .faults import ResponseAlreadySentFault


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, tuple)):
        return list(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


class Response:
    """
    HTTP response writer.

    Attributes:
        status: HTTP status code (default 200)
        body: Encoded body once written
        encoding: Text encoding (default utf-8)
    """

    __slots__ = ("status", "body", "encoding", "_headers", "_sent", "_path")

    def __init__(self, path: str = "", encoding: str = "utf-8"):
        self.status = 200
        self.body = b""
        self.encoding = encoding
        self._headers: Dict[str, str] = {}
        self._sent = False
        self._path = path

    # ========================================================================
    # State
    # ========================================================================

    @property
    def sent(self) -> bool:
        """True once a body has been written."""
        return self._sent

    @property
    def headers_sent(self) -> bool:
        """Alias of ``sent``."""
        return self._sent

    @property
    def headers(self) -> Dict[str, str]:
        """Response headers, keyed by lower-cased name."""
        return self._headers

    def status_code(self, status: int) -> "Response":
        """Set the status code; chainable: ``response.status_code(201).json(obj)``."""
        self.status = status
        return self

    def set_header(self, name: str, value: str) -> "Response":
        """Set a header; chainable."""
        self._headers[name.lower()] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._headers.get(name.lower(), default)

    # ========================================================================
    # Writers
    # ========================================================================

    def send(self, content: Any = b"", status: Optional[int] = None) -> None:
        """
        Write ``content`` as the response body.

        dict/list become JSON, str becomes text/plain, bytes are sent as-is,
        anything else is stringified.

        Raises:
            ResponseAlreadySentFault: If the response was already written
        """
        if isinstance(content, (dict, list)):
            self.json(content, status=status)
            return

        if "content-type" not in self._headers:
            self._headers["content-type"] = self._detect_media_type(content)
        self._write(self._encode_body(content), status)

    def json(self, obj: Any, status: Optional[int] = None) -> None:
        """Write ``obj`` serialized as JSON."""
        self._headers["content-type"] = "application/json; charset=utf-8"
        payload = json.dumps(obj, default=_json_default_serializer)
        self._write(payload.encode(self.encoding), status)

    def text(self, content: str, status: Optional[int] = None) -> None:
        """Write a plain text body."""
        self._headers["content-type"] = "text/plain; charset=utf-8"
        self._write(content.encode(self.encoding), status)

    def html(self, content: str, status: Optional[int] = None) -> None:
        """Write an HTML body."""
        self._headers["content-type"] = "text/html; charset=utf-8"
        self._write(content.encode(self.encoding), status)

    def redirect(self, location: str, status: int = 302) -> None:
        """Redirect to ``location``."""
        self._headers["location"] = location
        self._write(b"", status)

    def end(self, status: Optional[int] = None) -> None:
        """Finish the response without a body."""
        self._write(b"", status)

    def _write(self, body: bytes, status: Optional[int]) -> None:
        if self._sent:
            raise ResponseAlreadySentFault(self._path)
        if status is not None:
            self.status = status
        self.body = body
        self._headers["content-length"] = str(len(body))
        self._sent = True

    def _detect_media_type(self, content: Any) -> str:
        """Auto-detect media type from content."""
        if isinstance(content, bytes):
            return "application/octet-stream"
        return "text/plain; charset=utf-8"

    def _encode_body(self, content: Any) -> bytes:
        """Encode content to bytes."""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.encoding)
        return str(content).encode(self.encoding)

    # ========================================================================
    # ASGI
    # ========================================================================

    def _prepare_headers(self) -> List[tuple]:
        """Prepare headers for ASGI (list of byte tuples)."""
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self._headers.items()
        ]

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]], *, head: bool = False) -> None:
        """Flush the response to the ASGI server (headers only when ``head``)."""
        if "content-length" not in self._headers:
            self._headers["content-length"] = str(len(self.body))

        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": b"" if head else self.body,
        })

    def __repr__(self) -> str:
        return f"<Response status={self.status} sent={self._sent}>"
