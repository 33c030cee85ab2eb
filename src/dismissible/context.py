"""RequestContext — per-call metadata threaded through the hook pipeline."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from typing import Any


def _new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass
class RequestContext:
    """Caller-created bag of request metadata.

    One context is created per inbound call and discarded after it returns.
    The pipeline never mutates the caller's object: hook mutations produce
    a patched copy (see :meth:`patched`).

    Attributes:
        request_id: Correlation id.  Auto-generated when not provided.
        headers:    Request headers.  Keys are expected in lower case.
        query:      Raw query parameters.
        params:     Route parameters.
        body:       Raw request body fields.
        user:       Authenticated-user claims, if any upstream layer set them.
        ip:         Originating IP address.
        method:     Transport method (``"GET"``, ``"POST"``, ...).
        url:        Full request URL.
        origin:     ``Origin`` of the request.
        referer:    ``Referer`` of the request.
        user_agent: ``User-Agent`` of the request.
        timestamp:  When the request was created.  Auto-set to *now* (UTC).
    """

    request_id: str = field(default_factory=_new_request_id)
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)
    ip: str = ""
    method: str = ""
    url: str = ""
    origin: str = ""
    referer: str = ""
    user_agent: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())

    def copy(self) -> RequestContext:
        """Shallow copy; the dict fields are copied one level deep."""
        return replace(
            self,
            headers=dict(self.headers),
            query=dict(self.query),
            params=dict(self.params),
            body=dict(self.body),
            user=dict(self.user),
        )

    def patched(self, patch: dict[str, Any]) -> RequestContext:
        """Return a copy with the top-level fields in *patch* replaced.

        Keys that are not context fields are ignored.
        """
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in patch.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "headers": dict(self.headers),
            "query": dict(self.query),
            "params": dict(self.params),
            "body": dict(self.body),
            "user": dict(self.user),
            "ip": self.ip,
            "method": self.method,
            "url": self.url,
            "origin": self.origin,
            "referer": self.referer,
            "user_agent": self.user_agent,
            "timestamp": self.timestamp.isoformat(),
        }
