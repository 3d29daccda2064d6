"""
M3U playlist generation for get.php.
"""
import logging
import re
from typing import Sequence
from urllib.parse import quote

from xtream_gateway.models.channel import Channel
from xtream_gateway.services.codec import encode_stream_id

logger = logging.getLogger(__name__)

OUTPUT_EXTENSIONS = {"ts": "ts", "mpegts": "ts", "m3u8": "m3u8", "hls": "m3u8"}


def stream_url(base_url: str, username: str, password: str, stream_id: int, ext: str) -> str:
    """
    Player link for one channel.

    Credentials go in the path when they can; a "/" survives percent-encoding
    only as far as the router, which decodes it back into a path separator,
    so such credentials are carried in the query string instead.
    """
    if "/" in username or "/" in password:
        return (
            f"{base_url}/live/{stream_id}.{ext}"
            f"?username={quote(username, safe='')}&password={quote(password, safe='')}"
        )
    return f"{base_url}/live/{quote(username, safe='')}/{quote(password, safe='')}/{stream_id}.{ext}"


def _attr(value: str) -> str:
    """M3U attribute values cannot carry double quotes or newlines."""
    return re.sub(r'[\r\n"]+', " ", value or "").strip()


def build_m3u_playlist(
    channels: Sequence[Channel],
    base_url: str,
    username: str,
    password: str,
    output: str = "ts",
    playlist_type: str = "m3u_plus",
) -> str:
    """
    Render active channels as an M3U playlist pointing at /live/ URLs.

    ``m3u_plus`` adds tvg-* and group-title attributes and an url-tvg
    header; plain ``m3u`` writes bare #EXTINF lines. Channels without an
    upstream are left out.
    """
    ext = OUTPUT_EXTENSIONS.get((output or "ts").lower(), "ts")
    base_url = base_url.rstrip("/")
    user = quote(username, safe="")
    secret = quote(password, safe="")
    plus = playlist_type != "m3u"

    if plus:
        lines = [f'#EXTM3U url-tvg="{base_url}/xmltv.php?username={user}&password={secret}"']
    else:
        lines = ["#EXTM3U"]

    ordered = sorted(channels, key=lambda ch: ((ch.category or "General"), ch.name))
    written = 0
    for channel in ordered:
        if channel.primary_source is None:
            continue
        try:
            stream_id = encode_stream_id(channel.id)
        except ValueError:
            logger.warning(f"Skipping channel {channel.id!r}: id cannot be encoded")
            continue

        name = _attr(channel.name)
        if plus:
            tvg_id = channel.epg_id or re.sub(r"\s+", ".", channel.name)
            lines.append(
                f'#EXTINF:-1 tvg-id="{_attr(tvg_id)}" tvg-name="{name}" '
                f'tvg-logo="{_attr(channel.logo_url or "")}" '
                f'group-title="{_attr(channel.category or "General")}",{name}'
            )
        else:
            lines.append(f"#EXTINF:-1,{name}")
        lines.append(stream_url(base_url, username, password, stream_id, ext))
        written += 1

    logger.info(f"Generated M3U playlist for {username} with {written} channels")
    return "\n".join(lines) + "\n"
