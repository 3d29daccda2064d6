"""
Path-style Xtream endpoints: live/VOD/series/timeshift playback, XMLTV and
the get.php playlist.

Errors here are real HTTP statuses with plain-text bodies; they are raised
as XtreamError subclasses and rendered by the handler registered in main.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from xtream_gateway.config import Settings, get_settings
from xtream_gateway.dependencies import get_gate, get_responder, get_store
from xtream_gateway.limiter import DEFAULT_LIMIT, limiter
from xtream_gateway.services.entitlement import EntitlementGate
from xtream_gateway.services.playlist import build_m3u_playlist
from xtream_gateway.services.responder import StreamResponder
from xtream_gateway.services.store import CatalogStore
from xtream_gateway.services.xmltv import build_xmltv, xmltv_window
from xtream_gateway.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["streams"])


def split_stream_path(
    path: str, username: Optional[str], password: Optional[str]
) -> tuple[Optional[str], Optional[str], str]:
    """
    Pull credentials and the stream file out of a playback path.

    ``<user>/<pass>/.../<id>.<ext>`` carries credentials in the path; query
    string values take precedence when both are present.
    """
    parts = [part for part in path.split("/") if part]
    filename = parts[-1] if parts else ""
    if len(parts) >= 3:
        username = username or parts[0]
        password = password or parts[1]
    return username, password, filename


def client_address(request: Request) -> str:
    """Client IP, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


@router.get("/live/{path:path}")
@limiter.limit(DEFAULT_LIMIT)
async def live_stream(
    path: str,
    request: Request,
    responder: StreamResponder = Depends(get_responder),
):
    """Live playback: /live/<id>.m3u8, /live/<id>.ts or /live/<user>/<pass>/<id>.<ext>."""
    username, password, filename = split_stream_path(
        path, request.query_params.get("username"), request.query_params.get("password")
    )
    return await responder.live(
        username,
        password,
        filename,
        client_ip=client_address(request),
        user_agent=request.headers.get("user-agent"),
    )


async def _unsupported(kind: str, path: str, request: Request, responder: StreamResponder):
    username, password, _ = split_stream_path(
        path, request.query_params.get("username"), request.query_params.get("password")
    )
    await responder.unsupported(kind, username, password)


@router.get("/movie/{path:path}")
@limiter.limit(DEFAULT_LIMIT)
async def movie_stream(path: str, request: Request, responder: StreamResponder = Depends(get_responder)):
    await _unsupported("movie", path, request, responder)


@router.get("/series/{path:path}")
@limiter.limit(DEFAULT_LIMIT)
async def series_stream(path: str, request: Request, responder: StreamResponder = Depends(get_responder)):
    await _unsupported("series", path, request, responder)


@router.get("/timeshift/{path:path}")
@limiter.limit(DEFAULT_LIMIT)
async def timeshift_stream(path: str, request: Request, responder: StreamResponder = Depends(get_responder)):
    await _unsupported("timeshift", path, request, responder)


@router.get("/xmltv.php")
@router.get("/xmltv")
@limiter.limit(DEFAULT_LIMIT)
async def xmltv(
    request: Request,
    store: CatalogStore = Depends(get_store),
    gate: EntitlementGate = Depends(get_gate),
    settings: Settings = Depends(get_settings),
):
    """Full XMLTV guide for the configured window around now."""
    await gate.authenticate(
        request.query_params.get("username"), request.query_params.get("password")
    )
    start, end = xmltv_window(utcnow(), settings.xmltv_past_hours, settings.xmltv_future_days)
    programs = await store.get_programs_in_window(start, end)
    channels = await store.get_active_channels()
    content = build_xmltv(programs, channels, generator=settings.app_name)
    return Response(
        content=content,
        media_type="application/xml",
        headers={"Cache-Control": f"public, max-age={settings.xmltv_cache_seconds}"},
    )


@router.get("/get.php")
@limiter.limit(DEFAULT_LIMIT)
async def get_playlist(
    request: Request,
    store: CatalogStore = Depends(get_store),
    gate: EntitlementGate = Depends(get_gate),
):
    """
    M3U playlist of the live catalog.

    Query: ``username``, ``password``, ``type`` (m3u or m3u_plus) and
    ``output`` (ts, m3u8 or hls).
    """
    username = request.query_params.get("username")
    password = request.query_params.get("password")
    await gate.authenticate(username, password)

    channels = await store.get_active_channels()
    content = build_m3u_playlist(
        channels,
        base_url=str(request.base_url),
        username=username,
        password=password,
        output=request.query_params.get("output", "ts"),
        playlist_type=request.query_params.get("type", "m3u_plus"),
    )
    return Response(
        content=content,
        media_type="application/x-mpegurl",
        headers={
            "Content-Disposition": 'attachment; filename="playlist.m3u"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )
