"""
XMLTV guide generation.
"""
import html
import logging
from datetime import datetime, timedelta
from typing import Sequence

from xtream_gateway.models.channel import Channel
from xtream_gateway.models.epg import Program
from xtream_gateway.services.codec import encode_stream_id
from xtream_gateway.timeutils import xmltv_time

logger = logging.getLogger(__name__)


def _x(value) -> str:
    """Escape text and attribute values, quotes included."""
    return html.escape(str(value), quote=True)


def xmltv_window(now: datetime, past_hours: int = 24, future_days: int = 7) -> tuple[datetime, datetime]:
    """Guide window around ``now``."""
    return now - timedelta(hours=past_hours), now + timedelta(days=future_days)


def xmltv_channel_id(channel: Channel) -> str:
    """Guide key for a channel: its EPG id, or else its stream id."""
    if channel.epg_id:
        return channel.epg_id
    return str(encode_stream_id(channel.id))


def build_xmltv(
    programs: Sequence[Program],
    channels: Sequence[Channel],
    generator: str = "Xtream Gateway",
) -> str:
    """
    Render programs (already limited to the guide window) as an XMLTV document.

    One <channel> element is written per distinct guide id that has at least
    one program, so channels sharing an epg_id share one element; programs whose channel is not in ``channels`` (inactive or
    deleted) are left out.
    """
    by_id = {channel.id: channel for channel in channels}

    referenced: list[tuple[str, Channel]] = []
    seen = set()
    kept: list[tuple[Program, str]] = []
    for program in programs:
        channel = by_id.get(program.channel_id)
        if channel is None:
            continue
        try:
            key = xmltv_channel_id(channel)
        except ValueError:
            logger.warning(f"Channel {channel.id!r} has no usable guide id, skipping its programmes")
            continue
        if key not in seen:
            seen.add(key)
            referenced.append((key, channel))
        kept.append((program, key))

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<!DOCTYPE tv SYSTEM "xmltv.dtd">',
        f'<tv generator-info-name="{_x(generator)}">',
    ]

    for key, channel in referenced:
        lines.append(f'  <channel id="{_x(key)}">')
        lines.append(f"    <display-name>{_x(channel.name)}</display-name>")
        if channel.logo_url:
            lines.append(f'    <icon src="{_x(channel.logo_url)}" />')
        lines.append("  </channel>")

    for program, key in kept:
        lines.append(
            f'  <programme start="{xmltv_time(program.start_time)}" '
            f'stop="{xmltv_time(program.end_time)}" channel="{_x(key)}">'
        )
        lines.append(f"    <title>{_x(program.title)}</title>")
        lines.append(f"    <desc>{_x(program.description or '')}</desc>")
        lines.append(f"    <category>{_x(program.category or '')}</category>")
        if program.rating:
            lines.append("    <rating>")
            lines.append(f"      <value>{_x(program.rating)}</value>")
            lines.append("    </rating>")
        lines.append("  </programme>")

    lines.append("</tv>")
    logger.debug(f"XMLTV built: {len(referenced)} channels, {len(kept)} programmes")
    return "\n".join(lines) + "\n"
