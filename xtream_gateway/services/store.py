"""
SQLite-backed catalog and account store.
Holds subscribers, entitlements, the channel/VOD catalog, EPG programs and
the append-only session log behind one narrow async interface.
"""
import aiosqlite
import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from xtream_gateway.exceptions import BackendFailure
from xtream_gateway.models.account import Entitlement, Package, SessionRecord, Subscriber
from xtream_gateway.models.channel import Bouquet, Channel, Movie, Series
from xtream_gateway.models.epg import Program
from xtream_gateway.timeutils import to_db_time, utcnow

logger = logging.getLogger(__name__)


def _decode(table: str, rows, convert: Callable) -> list:
    """Convert rows to models; an undecodable row is a backend failure."""
    try:
        return [convert(row) for row in rows]
    except ValueError as e:
        # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
        logger.error(f"Malformed row in {table}: {e}")
        raise BackendFailure() from e


def _subscriber(row) -> Subscriber:
    return Subscriber(**{**dict(row), "is_trial": bool(row["is_trial"])})


def _entitlement(row) -> tuple[Entitlement, Optional[Package]]:
    entitlement = Entitlement(
        id=row["id"],
        subscriber_id=row["subscriber_id"],
        package_id=row["package_id"],
        status=row["status"],
        start_date=row["start_date"],
        end_date=row["end_date"],
    )
    package = None
    if row["package_name"] is not None:
        package = Package(
            id=row["package_id"],
            name=row["package_name"],
            concurrent_limit=row["concurrent_limit"] or 1,
            features=json.loads(row["features"] or "{}"),
        )
    return entitlement, package


def _channel(row) -> Channel:
    return Channel(**{
        **dict(row),
        "upstream_sources": json.loads(row["upstream_sources"] or "[]"),
        "active": bool(row["active"]),
    })


def _movie(row) -> Movie:
    return Movie(**{**dict(row), "active": bool(row["active"])})


def _series(row) -> Series:
    return Series(**{**dict(row), "active": bool(row["active"])})


def _bouquet(row) -> Bouquet:
    return Bouquet(**{
        **dict(row),
        "channel_ids": json.loads(row["channel_ids"] or "[]"),
        "is_adult": bool(row["is_adult"]),
    })


def _program(row) -> Program:
    return Program(**dict(row))


class CatalogStore:
    """Async SQLite store; one connection per operation."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._ensure_directory()

    def _ensure_directory(self):
        """Create data directory if it doesn't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def _connect(self):
        """Open a connection, translating driver errors into BackendFailure."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except aiosqlite.Error as e:
            logger.error(f"Store operation failed on {self.db_path}: {e}")
            raise BackendFailure() from e

    async def initialize(self):
        """Create database tables if they don't exist."""
        async with self._connect() as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS subscribers (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    api_password TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    max_connections INTEGER DEFAULT 1,
                    is_trial INTEGER DEFAULT 0,
                    trial_expires_at TEXT,
                    last_login TEXT,
                    created_at TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS packages (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    concurrent_limit INTEGER DEFAULT 1,
                    features TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id TEXT PRIMARY KEY,
                    subscriber_id TEXT NOT NULL,
                    package_id TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    start_date TEXT,
                    end_date TEXT NOT NULL
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS channels (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT,
                    logo_url TEXT,
                    epg_id TEXT,
                    upstream_sources TEXT,
                    active INTEGER DEFAULT 1,
                    created_at TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS programs (
                    id TEXT PRIMARY KEY,
                    channel_id TEXT NOT NULL,
                    program_id TEXT,
                    title TEXT NOT NULL,
                    description TEXT,
                    category TEXT,
                    rating TEXT,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS movies (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT,
                    description TEXT,
                    poster_url TEXT,
                    year INTEGER,
                    genre TEXT,
                    rating REAL,
                    duration_minutes INTEGER,
                    container_extension TEXT DEFAULT 'mp4',
                    active INTEGER DEFAULT 1,
                    created_at TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS series (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    category TEXT,
                    description TEXT,
                    poster_url TEXT,
                    year INTEGER,
                    genre TEXT,
                    rating REAL,
                    seasons INTEGER DEFAULT 0,
                    episodes INTEGER DEFAULT 0,
                    active INTEGER DEFAULT 1,
                    created_at TEXT,
                    updated_at TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS bouquets (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    channel_ids TEXT,
                    sort_order INTEGER DEFAULT 0,
                    is_adult INTEGER DEFAULT 0
                )
            """)

            # Append-only; never read back by the API
            await db.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subscriber_id TEXT NOT NULL,
                    channel_id TEXT NOT NULL,
                    client_ip TEXT,
                    user_agent TEXT,
                    started_at TEXT NOT NULL
                )
            """)

            await db.execute("CREATE INDEX IF NOT EXISTS idx_subscriptions_subscriber ON subscriptions(subscriber_id, status)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_channels_active ON channels(active)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_programs_channel ON programs(channel_id, start_time)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_programs_time ON programs(start_time, end_time)")

            await db.commit()

    # ==================== ACCOUNTS ====================

    async def store_subscribers(self, subscribers: list[dict]):
        """Bulk store/update subscribers."""
        async with self._connect() as db:
            for sub in subscribers:
                await db.execute(
                    """INSERT OR REPLACE INTO subscribers
                       (id, username, api_password, status, max_connections,
                        is_trial, trial_expires_at, last_login, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        sub.get("id") or str(uuid.uuid4()),
                        sub["username"],
                        sub.get("api_password"),
                        sub.get("status", "active"),
                        sub.get("max_connections", 1),
                        1 if sub.get("is_trial") else 0,
                        to_db_time(sub.get("trial_expires_at")),
                        to_db_time(sub.get("last_login")),
                        to_db_time(sub.get("created_at") or utcnow()),
                    )
                )
            await db.commit()

    async def store_packages(self, packages: list[dict]):
        """Bulk store/update packages."""
        async with self._connect() as db:
            for pkg in packages:
                await db.execute(
                    """INSERT OR REPLACE INTO packages (id, name, concurrent_limit, features)
                       VALUES (?, ?, ?, ?)""",
                    (
                        pkg.get("id") or str(uuid.uuid4()),
                        pkg["name"],
                        pkg.get("concurrent_limit", 1),
                        json.dumps(pkg.get("features", {})),
                    )
                )
            await db.commit()

    async def store_subscriptions(self, subscriptions: list[dict]):
        """Bulk store/update entitlements."""
        async with self._connect() as db:
            for ent in subscriptions:
                await db.execute(
                    """INSERT OR REPLACE INTO subscriptions
                       (id, subscriber_id, package_id, status, start_date, end_date)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        ent.get("id") or str(uuid.uuid4()),
                        ent["subscriber_id"],
                        ent.get("package_id"),
                        ent.get("status", "active"),
                        to_db_time(ent.get("start_date")),
                        to_db_time(ent["end_date"]),
                    )
                )
            await db.commit()

    async def get_subscriber_by_username(self, username: str) -> Optional[Subscriber]:
        """Exact, case-sensitive username lookup."""
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM subscribers WHERE username = ?", (username,)
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return _decode("subscribers", [row], _subscriber)[0]

    async def get_active_entitlements(
        self, subscriber_id: str, now: datetime
    ) -> list[tuple[Entitlement, Optional[Package]]]:
        """Active entitlements whose end date has not passed (inclusive)."""
        async with self._connect() as db:
            cursor = await db.execute("""
                SELECT s.id, s.subscriber_id, s.package_id, s.status,
                       s.start_date, s.end_date,
                       p.name AS package_name,
                       p.concurrent_limit, p.features
                FROM subscriptions s
                LEFT JOIN packages p ON p.id = s.package_id
                WHERE s.subscriber_id = ?
                  AND s.status = 'active'
                  AND s.end_date >= ?
                ORDER BY s.end_date DESC
            """, (subscriber_id, to_db_time(now)))
            rows = await cursor.fetchall()

        return _decode("subscriptions", rows, _entitlement)

    async def touch_last_login(self, subscriber_id: str, when: Optional[datetime] = None):
        """Stamp the subscriber's last successful authentication."""
        async with self._connect() as db:
            await db.execute(
                "UPDATE subscribers SET last_login = ? WHERE id = ?",
                (to_db_time(when or utcnow()), subscriber_id)
            )
            await db.commit()

    async def record_session(self, record: SessionRecord):
        """Append one playback session row."""
        async with self._connect() as db:
            await db.execute(
                """INSERT INTO sessions (subscriber_id, channel_id, client_ip, user_agent, started_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    record.subscriber_id,
                    record.channel_id,
                    record.client_ip,
                    record.user_agent,
                    to_db_time(record.started_at),
                )
            )
            await db.commit()

    # ==================== CATALOG ====================

    async def store_channels(self, channels: list[dict]):
        """Bulk store/update channels using upsert pattern."""
        async with self._connect() as db:
            for ch in channels:
                await db.execute(
                    """INSERT OR REPLACE INTO channels
                       (id, name, category, logo_url, epg_id, upstream_sources, active, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        ch.get("id") or str(uuid.uuid4()),
                        ch["name"],
                        ch.get("category"),
                        ch.get("logo_url"),
                        ch.get("epg_id"),
                        json.dumps(ch.get("upstream_sources", [])),
                        0 if ch.get("active") is False else 1,
                        to_db_time(ch.get("created_at") or utcnow()),
                    )
                )
            await db.commit()

    async def get_active_channels(self) -> list[Channel]:
        """Snapshot of active channels in a stable order."""
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM channels WHERE active = 1 ORDER BY name, id"
            )
            rows = await cursor.fetchall()

        return _decode("channels", rows, _channel)

    async def store_movies(self, movies: list[dict]):
        """Bulk store/update VOD titles."""
        async with self._connect() as db:
            for mv in movies:
                await db.execute(
                    """INSERT OR REPLACE INTO movies
                       (id, name, category, description, poster_url, year, genre,
                        rating, duration_minutes, container_extension, active, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        mv.get("id") or str(uuid.uuid4()),
                        mv["name"],
                        mv.get("category"),
                        mv.get("description"),
                        mv.get("poster_url"),
                        mv.get("year"),
                        mv.get("genre"),
                        mv.get("rating"),
                        mv.get("duration_minutes"),
                        mv.get("container_extension", "mp4"),
                        0 if mv.get("active") is False else 1,
                        to_db_time(mv.get("created_at") or utcnow()),
                    )
                )
            await db.commit()

    async def get_active_movies(self) -> list[Movie]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM movies WHERE active = 1 ORDER BY name, id"
            )
            rows = await cursor.fetchall()
        return _decode("movies", rows, _movie)

    async def store_series(self, series: list[dict]):
        """Bulk store/update series headers."""
        async with self._connect() as db:
            for sr in series:
                created = to_db_time(sr.get("created_at") or utcnow())
                await db.execute(
                    """INSERT OR REPLACE INTO series
                       (id, title, category, description, poster_url, year, genre,
                        rating, seasons, episodes, active, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        sr.get("id") or str(uuid.uuid4()),
                        sr["title"],
                        sr.get("category"),
                        sr.get("description"),
                        sr.get("poster_url"),
                        sr.get("year"),
                        sr.get("genre"),
                        sr.get("rating"),
                        sr.get("seasons", 0),
                        sr.get("episodes", 0),
                        0 if sr.get("active") is False else 1,
                        created,
                        to_db_time(sr.get("updated_at")) or created,
                    )
                )
            await db.commit()

    async def get_active_series(self) -> list[Series]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM series WHERE active = 1 ORDER BY title, id"
            )
            rows = await cursor.fetchall()
        return _decode("series", rows, _series)

    async def store_bouquets(self, bouquets: list[dict]):
        """Bulk store/update bouquets."""
        async with self._connect() as db:
            for bq in bouquets:
                await db.execute(
                    """INSERT OR REPLACE INTO bouquets (id, name, channel_ids, sort_order, is_adult)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        bq.get("id") or str(uuid.uuid4()),
                        bq["name"],
                        json.dumps(bq.get("channel_ids", [])),
                        bq.get("sort_order", 0),
                        1 if bq.get("is_adult") else 0,
                    )
                )
            await db.commit()

    async def get_bouquets(self) -> list[Bouquet]:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM bouquets ORDER BY sort_order, name")
            rows = await cursor.fetchall()

        return _decode("bouquets", rows, _bouquet)

    # ==================== EPG ====================

    async def store_programs(self, programs: list[dict]):
        """Bulk store EPG programs."""
        async with self._connect() as db:
            for prog in programs:
                await db.execute(
                    """INSERT OR REPLACE INTO programs
                       (id, channel_id, program_id, title, description, category,
                        rating, start_time, end_time)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        prog.get("id") or str(uuid.uuid4()),
                        prog["channel_id"],
                        prog.get("program_id"),
                        prog["title"],
                        prog.get("description"),
                        prog.get("category"),
                        prog.get("rating"),
                        to_db_time(prog["start_time"]),
                        to_db_time(prog["end_time"]),
                    )
                )
            await db.commit()

    async def get_programs_for_channel(
        self, channel_id: str, since: datetime, limit: int = 4
    ) -> list[Program]:
        """Programs on a channel that have not ended yet, earliest first."""
        async with self._connect() as db:
            cursor = await db.execute("""
                SELECT * FROM programs
                WHERE channel_id = ? AND end_time >= ?
                ORDER BY start_time ASC
                LIMIT ?
            """, (channel_id, to_db_time(since), limit))
            rows = await cursor.fetchall()
        return _decode("programs", rows, _program)

    async def get_programs_in_window(self, start: datetime, end: datetime) -> list[Program]:
        """Programs overlapping [start, end], ordered by channel then start."""
        async with self._connect() as db:
            cursor = await db.execute("""
                SELECT * FROM programs
                WHERE end_time >= ? AND start_time <= ?
                ORDER BY channel_id, start_time ASC
            """, (to_db_time(start), to_db_time(end)))
            rows = await cursor.fetchall()
        return _decode("programs", rows, _program)

    # ==================== STATS ====================

    async def get_stats(self) -> dict:
        """Get row counts per table."""
        stats = {}
        async with self._connect() as db:
            for table in ("subscribers", "subscriptions", "channels", "programs",
                          "movies", "series", "bouquets", "sessions"):
                cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
                stats[table] = (await cursor.fetchone())[0]
        return stats
