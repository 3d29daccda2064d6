"""
CORS handling for Xtream clients.

Players and web panels call the API from arbitrary origins, often without an
Origin header at all, so the allow headers are attached to every response
and preflight requests are answered without touching the routers.
"""
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

DEFAULT_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def cors_headers(allow_origin: str = "*", allow_headers: Optional[list[str]] = None) -> dict:
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ", ".join(allow_headers or DEFAULT_ALLOW_HEADERS),
    }


class XtreamCORSMiddleware(BaseHTTPMiddleware):
    """Attach the allow headers to every response and answer any OPTIONS request with 200."""

    def __init__(self, app, allow_origin: str = "*", allow_headers: Optional[list[str]] = None):
        super().__init__(app)
        self.cors_headers = cors_headers(allow_origin, allow_headers)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.cors_headers)

        response = await call_next(request)
        response.headers.update(self.cors_headers)
        return response
