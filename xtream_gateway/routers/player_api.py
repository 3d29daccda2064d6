"""
Xtream Codes action API (player_api.php).

Every request authenticates first; failures are reported inside a
``user_info`` envelope rather than through the HTTP status, which is what
Xtream players expect.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from xtream_gateway.config import Settings, get_settings
from xtream_gateway.dependencies import get_gate, get_store
from xtream_gateway.exceptions import AuthenticationFailure, BackendFailure
from xtream_gateway.limiter import DEFAULT_LIMIT, limiter
from xtream_gateway.models.account import AuthContext
from xtream_gateway.services import projector
from xtream_gateway.services.codec import decode_stream_id
from xtream_gateway.services.entitlement import EntitlementGate
from xtream_gateway.services.store import CatalogStore
from xtream_gateway.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["player_api"])


async def request_params(request: Request) -> dict:
    """Query parameters, with POST form fields filling in whatever is missing."""
    params = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        for key, value in form.items():
            if isinstance(value, str):
                params.setdefault(key, value)
    return params


def _parse_limit(value: Optional[str], default: int) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return limit if limit > 0 else default


async def dispatch_action(
    action: str,
    params: dict,
    ctx: AuthContext,
    store: CatalogStore,
    settings: Settings,
):
    """Run one player_api action for an authenticated subscriber."""
    category_id = params.get("category_id")

    if action in ("get_live_categories", "get_channel_categories"):
        return projector.live_categories(await store.get_active_channels())

    if action == "get_live_streams":
        return projector.live_streams(await store.get_active_channels(), category_id)

    if action == "get_all_channels":
        return projector.live_streams(await store.get_active_channels())

    if action == "get_vod_categories":
        return projector.vod_categories(await store.get_active_movies())

    if action == "get_vod_streams":
        return projector.vod_streams(await store.get_active_movies(), category_id)

    if action == "get_vod_info":
        return projector.vod_info(await store.get_active_movies(), params.get("vod_id"))

    if action == "get_series_categories":
        return projector.series_categories(await store.get_active_series())

    if action == "get_series":
        return projector.series_list(await store.get_active_series(), category_id)

    if action == "get_series_info":
        return projector.series_info(await store.get_active_series(), params.get("series_id"))

    if action in ("get_short_epg", "get_simple_data_table"):
        stream_id = params.get("stream_id")
        channel = None
        if stream_id:
            channel = decode_stream_id(stream_id, await store.get_active_channels())
        if channel is None:
            return {"epg_listings": []}
        limit = _parse_limit(params.get("limit"), settings.short_epg_limit)
        programs = await store.get_programs_for_channel(channel.id, utcnow(), limit)
        return projector.short_epg(programs, detailed=action == "get_simple_data_table")

    if action == "get_bouquets":
        return projector.bouquets(await store.get_bouquets(), await store.get_active_channels())

    if action:
        logger.debug(f"Unknown action '{action}', answering with account info")
    return projector.auth_response(ctx, params.get("password", ""), settings, utcnow())


@router.api_route("/player_api.php", methods=["GET", "POST"])
@router.api_route("/xtream-api", methods=["GET", "POST"])
@router.api_route("/", methods=["GET", "POST"])
@limiter.limit(DEFAULT_LIMIT)
async def player_api(
    request: Request,
    store: CatalogStore = Depends(get_store),
    gate: EntitlementGate = Depends(get_gate),
    settings: Settings = Depends(get_settings),
):
    """
    Xtream Codes API entry point.

    Accepts ``username``, ``password`` and ``action`` plus the action's own
    parameters (``category_id``, ``stream_id``, ``limit``, ``vod_id``,
    ``series_id``) via query string or form body.
    """
    params = await request_params(request)
    action = params.get("action", "")
    logger.info(f"Xtream API request - action: '{action}', user: {params.get('username')}")

    try:
        ctx = await gate.authenticate(params.get("username"), params.get("password"))
        output = await dispatch_action(action, params, ctx, store, settings)
    except AuthenticationFailure as e:
        return JSONResponse(content=projector.auth_failure(e.message))
    except BackendFailure as e:
        logger.error(f"Xtream API backend failure for action '{action}': {e}")
        return JSONResponse(status_code=e.status_code, content=projector.auth_failure(e.message))
    except Exception as e:
        logger.error(f"Xtream API request failed for action '{action}': {e}", exc_info=True)
        failure = BackendFailure()
        return JSONResponse(status_code=failure.status_code, content=projector.auth_failure(failure.message))

    return JSONResponse(content=output)
