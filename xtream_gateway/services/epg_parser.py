"""
EPG Parser Service.
Parses XMLTV guide files and stores programmes against catalog channels.
"""
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
import logging
import hashlib

from xtream_gateway.services.codec import encode_stream_id
from xtream_gateway.services.store import CatalogStore

logger = logging.getLogger(__name__)


def _text(elem) -> str | None:
    return elem.text.strip() if elem is not None and elem.text else None


class EPGParser:
    """Parse XMLTV format EPG data."""

    def __init__(self, store: CatalogStore):
        self.store = store

    async def _channel_index(self) -> dict[str, str]:
        """Guide key -> catalog channel id, by EPG id and by stream id."""
        index = {}
        for channel in await self.store.get_active_channels():
            try:
                index[str(encode_stream_id(channel.id))] = channel.id
            except ValueError:
                pass
            if channel.epg_id:
                index[channel.epg_id] = channel.id
        return index

    async def parse_file(self, filepath: str | Path) -> dict:
        """
        Parse an XMLTV file and store programs for known channels.

        Args:
            filepath: Path to the XMLTV file

        Returns:
            Stats about the parsed data
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"EPG file not found: {filepath}")

        logger.info(f"Parsing EPG file: {filepath}")

        tree = ET.parse(filepath)
        root = tree.getroot()
        index = await self._channel_index()

        channels = {
            elem.get('id') for elem in root.findall('channel') if elem.get('id')
        }
        programs = []
        skipped = 0

        for programme in root.findall('programme'):
            guide_channel = programme.get('channel')
            start = programme.get('start')
            stop = programme.get('stop')

            if not all([guide_channel, start, stop]):
                skipped += 1
                continue

            channel_id = index.get(guide_channel)
            if channel_id is None:
                skipped += 1
                continue

            try:
                start_dt = self._parse_xmltv_date(start)
                stop_dt = self._parse_xmltv_date(stop)
            except ValueError as e:
                logger.warning(f"Failed to parse date: {e}")
                skipped += 1
                continue

            title = _text(programme.find('title')) or 'Unknown'
            rating_elem = programme.find('rating')
            rating = _text(rating_elem.find('value')) if rating_elem is not None else None

            # Stable id so re-importing a guide updates rows instead of duplicating them
            row_id = hashlib.md5(
                f"{channel_id}{start}{title}".encode()
            ).hexdigest()[:16]

            programs.append({
                'id': row_id,
                'channel_id': channel_id,
                'program_id': programme.get('id'),
                'title': title,
                'description': _text(programme.find('desc')),
                'category': _text(programme.find('category')),
                'rating': rating,
                'start_time': start_dt,
                'end_time': stop_dt,
            })

        logger.info(
            f"Parsed {len(channels)} channels and {len(programs)} programs "
            f"({skipped} skipped)"
        )

        if programs:
            await self.store.store_programs(programs)

        return {
            'channels': len(channels),
            'programs': len(programs),
            'skipped': skipped,
            'file': str(filepath)
        }

    def _parse_xmltv_date(self, date_str: str) -> datetime:
        """
        Parse XMLTV date format.
        Format: 20251212040000 +0000 or 20251212040000 (taken as UTC)
        """
        parts = date_str.split()
        if len(parts) > 1:
            parsed = datetime.strptime(f"{parts[0][:14]} {parts[1]}", '%Y%m%d%H%M%S %z')
            return parsed.astimezone(timezone.utc)
        return datetime.strptime(parts[0][:14], '%Y%m%d%H%M%S').replace(tzinfo=timezone.utc)
