"""
Catalog projection into the Xtream Codes JSON dialect.

Pure functions: they take catalog rows already loaded from the store and
return plain dicts ready for JSON serialization. Category ids are positional
(1-based index into the labels of the same snapshot) and are only meaningful
within one response.
"""
import base64
import logging
from datetime import datetime
from typing import Optional, Sequence, Union

from xtream_gateway.config import Settings
from xtream_gateway.models.account import AuthContext
from xtream_gateway.models.channel import Bouquet, Channel, Movie, Series
from xtream_gateway.models.epg import Program
from xtream_gateway.services.codec import decode_stream_id, encode_stream_id
from xtream_gateway.timeutils import unix_seconds, xtream_time

logger = logging.getLogger(__name__)

CategoryParam = Optional[Union[int, str]]


# ==================== CATEGORIES ====================

def category_labels(entries: Sequence, attr: str = "category") -> list[str]:
    """Distinct non-empty labels in order of first appearance."""
    labels = []
    for entry in entries:
        label = getattr(entry, attr)
        if label and label not in labels:
            labels.append(label)
    return labels


def _category_list(labels: list[str]) -> list[dict]:
    return [
        {"category_id": str(index), "category_name": label, "parent_id": 0}
        for index, label in enumerate(labels, start=1)
    ]


def _resolve_category(labels: list[str], category_id: CategoryParam) -> Optional[str]:
    """Label selected by a positional id; None means no filter."""
    if category_id is None:
        return None
    try:
        position = int(str(category_id).strip())
    except ValueError:
        return None
    if position < 1 or position > len(labels):
        return None
    return labels[position - 1]


def _category_id(labels: list[str], label: Optional[str]) -> str:
    if label in labels:
        return str(labels.index(label) + 1)
    return "0"


def _filter(entries: Sequence, labels: list[str], category_id: CategoryParam) -> list:
    selected = _resolve_category(labels, category_id)
    if selected is None:
        return list(entries)
    return [entry for entry in entries if entry.category == selected]


def _safe_stream_id(catalog_id: str) -> int:
    try:
        return encode_stream_id(catalog_id)
    except ValueError:
        logger.warning(f"Catalog id {catalog_id!r} cannot be encoded as a stream id")
        return 0


def _rating(value: Optional[float]) -> str:
    return str(value) if value is not None else ""


# ==================== LIVE ====================

def live_categories(channels: Sequence[Channel]) -> list[dict]:
    return _category_list(category_labels(channels))


def live_streams(channels: Sequence[Channel], category_id: CategoryParam = None) -> list[dict]:
    """Live stream listing, optionally filtered by positional category id."""
    labels = category_labels(channels)
    streams = []
    for num, channel in enumerate(_filter(channels, labels, category_id), start=1):
        cat_id = _category_id(labels, channel.category)
        streams.append({
            "num": num,
            "name": channel.name,
            "stream_type": "live",
            "stream_id": _safe_stream_id(channel.id),
            "stream_icon": channel.logo_url or "",
            "epg_channel_id": channel.epg_id or "",
            "added": str(unix_seconds(channel.created_at)),
            "category_id": cat_id,
            "category_ids": [int(cat_id)] if cat_id != "0" else [],
            "custom_sid": "",
            "tv_archive": 0,
            "direct_source": "",
            "tv_archive_duration": 0,
            "is_adult": "0",
        })
    return streams


# ==================== VOD ====================

def vod_categories(movies: Sequence[Movie]) -> list[dict]:
    return _category_list(category_labels(movies))


def vod_streams(movies: Sequence[Movie], category_id: CategoryParam = None) -> list[dict]:
    labels = category_labels(movies)
    streams = []
    for num, movie in enumerate(_filter(movies, labels, category_id), start=1):
        streams.append({
            "num": num,
            "name": movie.name,
            "stream_type": "movie",
            "stream_id": _safe_stream_id(movie.id),
            "stream_icon": movie.poster_url or "",
            "rating": _rating(movie.rating),
            "rating_5based": round(movie.rating / 2, 1) if movie.rating is not None else 0,
            "genre": movie.genre or "",
            "plot": movie.description or "",
            "releasedate": str(movie.year) if movie.year else "",
            "added": str(unix_seconds(movie.created_at)),
            "category_id": _category_id(labels, movie.category),
            "container_extension": movie.container_extension,
            "custom_sid": "",
            "direct_source": "",
        })
    return streams


def vod_info(movies: Sequence[Movie], vod_id: CategoryParam) -> dict:
    """Detail view for one title; unknown ids get an empty placeholder."""
    movie = decode_stream_id(vod_id, movies) if vod_id is not None else None
    if movie is None:
        return {
            "info": {
                "name": "",
                "description": "",
                "plot": "",
                "genre": "",
                "director": "",
                "cast": "",
                "rating": "",
                "duration": "",
                "duration_secs": 0,
                "releasedate": "",
                "movie_image": "",
            },
            "movie_data": {
                "stream_id": str(vod_id) if vod_id is not None else "0",
                "name": "",
                "added": "",
                "category_id": "",
                "container_extension": "mp4",
                "custom_sid": "",
                "direct_source": "",
            },
        }

    labels = category_labels(movies)
    minutes = movie.duration_minutes or 0
    return {
        "info": {
            "name": movie.name,
            "description": movie.description or "",
            "plot": movie.description or "",
            "genre": movie.genre or "",
            "director": "",
            "cast": "",
            "rating": _rating(movie.rating),
            "duration": f"{minutes // 60:02d}:{minutes % 60:02d}:00",
            "duration_secs": minutes * 60,
            "releasedate": str(movie.year) if movie.year else "",
            "movie_image": movie.poster_url or "",
        },
        "movie_data": {
            "stream_id": _safe_stream_id(movie.id),
            "name": movie.name,
            "added": str(unix_seconds(movie.created_at)),
            "category_id": _category_id(labels, movie.category),
            "container_extension": movie.container_extension,
            "custom_sid": "",
            "direct_source": "",
        },
    }


# ==================== SERIES ====================

def series_categories(series: Sequence[Series]) -> list[dict]:
    return _category_list(category_labels(series))


def series_list(series: Sequence[Series], category_id: CategoryParam = None) -> list[dict]:
    labels = category_labels(series)
    listing = []
    for num, show in enumerate(_filter(series, labels, category_id), start=1):
        listing.append({
            "num": num,
            "name": show.title,
            "series_id": _safe_stream_id(show.id),
            "cover": show.poster_url or "",
            "plot": show.description or "",
            "cast": "",
            "director": "",
            "genre": show.genre or "",
            "releaseDate": str(show.year) if show.year else "",
            "last_modified": str(unix_seconds(show.updated_at or show.created_at)),
            "rating": _rating(show.rating),
            "rating_5based": round(show.rating / 2, 1) if show.rating is not None else 0,
            "backdrop_path": [],
            "youtube_trailer": "",
            "episode_run_time": "",
            "category_id": _category_id(labels, show.category),
        })
    return listing


def series_info(series: Sequence[Series], series_id: CategoryParam) -> dict:
    """Series detail; episodes are not modelled so the episode map is empty."""
    show = decode_stream_id(series_id, series) if series_id is not None else None
    info = {
        "name": "",
        "cover": "",
        "plot": "",
        "cast": "",
        "director": "",
        "genre": "",
        "releaseDate": "",
        "last_modified": "",
        "rating": "",
        "category_id": "",
    }
    if show is not None:
        info.update({
            "name": show.title,
            "cover": show.poster_url or "",
            "plot": show.description or "",
            "genre": show.genre or "",
            "releaseDate": str(show.year) if show.year else "",
            "last_modified": str(unix_seconds(show.updated_at or show.created_at)),
            "rating": _rating(show.rating),
            "category_id": _category_id(category_labels(series), show.category),
        })
    return {"seasons": [], "info": info, "episodes": {}}


# ==================== EPG ====================

def _b64(text: Optional[str]) -> str:
    return base64.b64encode((text or "").encode("utf-8")).decode("ascii")


def short_epg(programs: Sequence[Program], detailed: bool = False) -> dict:
    """
    Short EPG listing for one channel.

    Titles and descriptions are base64 encoded, as Xtream clients expect.
    The detailed variant (get_simple_data_table) flags the first listing as
    now playing.
    """
    listings = []
    for index, program in enumerate(programs):
        listing = {
            "id": program.id,
            "epg_id": program.program_id or "",
            "title": _b64(program.title),
            "lang": "en",
            "start": xtream_time(program.start_time),
            "end": xtream_time(program.end_time),
            "description": _b64(program.description),
            "category": program.category or "",
            "rating": program.rating or "",
            "channel_id": program.channel_id,
            "start_timestamp": str(unix_seconds(program.start_time)),
            "stop_timestamp": str(unix_seconds(program.end_time)),
        }
        if detailed:
            listing["now_playing"] = 1 if index == 0 else 0
            listing["has_archive"] = 0
        listings.append(listing)
    return {"epg_listings": listings}


# ==================== BOUQUETS ====================

def bouquets(bouquet_rows: Sequence[Bouquet], channels: Sequence[Channel]) -> list[dict]:
    """Bouquets with member channels expressed as stream ids; unknown members are dropped."""
    known = {channel.id for channel in channels}
    return [
        {
            "bouquet_id": str(bouquet.id),
            "bouquet_name": bouquet.name,
            "bouquet_channels": [
                _safe_stream_id(channel_id)
                for channel_id in bouquet.channel_ids
                if channel_id in known
            ],
            "is_adult": 1 if bouquet.is_adult else 0,
        }
        for bouquet in bouquet_rows
    ]


# ==================== AUTH ====================

def auth_response(ctx: AuthContext, password: str, settings: Settings, now: datetime) -> dict:
    """Default player_api response: account summary plus server details."""
    subscriber = ctx.subscriber
    return {
        "user_info": {
            "username": subscriber.username,
            "password": password,
            "message": "",
            "auth": 1,
            "status": "Active",
            "exp_date": str(unix_seconds(ctx.entitlement.end_date)),
            "is_trial": "1" if subscriber.is_trial else "0",
            "active_cons": "0",
            "created_at": str(unix_seconds(subscriber.created_at)),
            "max_connections": str(ctx.max_connections),
            "allowed_output_formats": list(settings.allowed_output_formats),
        },
        "server_info": {
            "url": settings.server_url,
            "port": settings.server_port,
            "https_port": settings.https_port,
            "server_protocol": settings.server_protocol,
            "rtmp_port": settings.rtmp_port,
            "timezone": settings.timezone,
            "timestamp_now": unix_seconds(now),
            "time_now": xtream_time(now),
            "server_name": settings.app_name,
            "version": settings.app_version,
            "process": True,
        },
    }


def auth_failure(message: str) -> dict:
    return {"user_info": {"auth": 0, "message": message}}
