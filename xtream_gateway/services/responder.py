"""
Playback resolution for path-style Xtream stream URLs.

Live requests are resolved to the channel's primary upstream: HLS upstreams
get a redirect, anything else is wrapped in a one-entry HLS manifest.
Segment-style requests are always redirected. VOD, series and timeshift
playback are authenticated but not served.
"""
import logging
from typing import Optional
from urllib.parse import urlparse

from fastapi.responses import RedirectResponse, Response

from xtream_gateway.config import Settings
from xtream_gateway.exceptions import PlaybackNotImplemented, StreamNotFound
from xtream_gateway.models.account import AuthContext, SessionRecord
from xtream_gateway.models.channel import Channel
from xtream_gateway.services.background import BackgroundWriter
from xtream_gateway.services.codec import decode_stream_id
from xtream_gateway.services.entitlement import EntitlementGate
from xtream_gateway.services.store import CatalogStore
from xtream_gateway.timeutils import utcnow

logger = logging.getLogger(__name__)

MANIFEST_TYPE = "application/vnd.apple.mpegurl"
MANIFEST_EXTENSIONS = {"m3u8"}

NOT_IMPLEMENTED_MESSAGES = {
    "movie": "VOD playback not implemented",
    "series": "Series playback not implemented",
    "timeshift": "Timeshift not implemented",
}


def split_stream_file(filename: str) -> tuple[str, str]:
    """'12345.m3u8' -> ('12345', 'm3u8'); a bare id is treated as a TS request."""
    stem, dot, ext = filename.rpartition(".")
    if not dot:
        return filename, "ts"
    return stem, ext.lower()


def is_hls_url(url: str) -> bool:
    """True when the URL path (query ignored) names an HLS playlist."""
    return urlparse(url).path.lower().endswith(".m3u8")


def build_manifest(channel_name: str, upstream_url: str, target_duration: int = 10) -> str:
    """Minimal single-entry VOD-style HLS playlist wrapping a non-HLS upstream."""
    return "\n".join([
        "#EXTM3U",
        "#EXT-X-VERSION:3",
        f"#EXT-X-TARGETDURATION:{target_duration}",
        "#EXT-X-MEDIA-SEQUENCE:0",
        f"#EXTINF:{target_duration}.0,{channel_name}",
        upstream_url,
        "#EXT-X-ENDLIST",
    ]) + "\n"


class StreamResponder:
    """Turns authenticated stream requests into redirects or manifests."""

    def __init__(
        self,
        store: CatalogStore,
        gate: EntitlementGate,
        writer: BackgroundWriter,
        settings: Settings,
    ):
        self.store = store
        self.gate = gate
        self.writer = writer
        self.settings = settings

    async def _resolve_channel(self, stream_id: str) -> Channel:
        channels = await self.store.get_active_channels()
        channel = decode_stream_id(stream_id, channels)
        if channel is None or channel.primary_source is None:
            logger.info(f"Stream id {stream_id!r} did not resolve to a playable channel")
            raise StreamNotFound()
        return channel

    def _log_session(self, ctx: AuthContext, channel: Channel, client_ip: str, user_agent: Optional[str]):
        record = SessionRecord(
            subscriber_id=ctx.subscriber.id,
            channel_id=channel.id,
            client_ip=client_ip,
            user_agent=user_agent,
            started_at=utcnow(),
        )
        self.writer.submit(self.store.record_session(record), f"session for {channel.id}")

    async def live(
        self,
        username: Optional[str],
        password: Optional[str],
        filename: str,
        client_ip: str = "unknown",
        user_agent: Optional[str] = None,
    ) -> Response:
        """
        Resolve /live/<stream_id>.<ext>.

        Raises AuthenticationFailure or StreamNotFound; a session row is only
        written once the stream resolves.
        """
        ctx = await self.gate.authenticate(username, password)
        stream_id, ext = split_stream_file(filename)
        channel = await self._resolve_channel(stream_id)
        upstream_url = channel.primary_source.url

        self._log_session(ctx, channel, client_ip, user_agent)

        if ext not in MANIFEST_EXTENSIONS or is_hls_url(upstream_url):
            logger.info(f"Redirecting stream {stream_id} ({ext}) to upstream for channel {channel.id}")
            return RedirectResponse(upstream_url, status_code=302)

        content = build_manifest(
            channel.name, upstream_url, self.settings.manifest_target_duration
        )
        return Response(
            content=content,
            media_type=MANIFEST_TYPE,
            headers={"Cache-Control": "no-cache"},
        )

    async def unsupported(self, kind: str, username: Optional[str], password: Optional[str]):
        """Authenticate, then refuse playback types the catalog cannot serve."""
        await self.gate.authenticate(username, password)
        raise PlaybackNotImplemented(NOT_IMPLEMENTED_MESSAGES.get(kind, "Not implemented"))
