"""
Shared catalog fixture data.

Channel ids are chosen so their stream ids are easy to read:
0000007b -> 123, 000001c8 -> 456, 00000315 -> 789, 00000378 -> 888.
"""
from datetime import datetime, timedelta

from xtream_gateway.services.store import CatalogStore
from xtream_gateway.timeutils import utcnow

CH_A = "0000007b-aaaa-4aaa-8aaa-000000000001"
CH_B = "000001c8-bbbb-4bbb-8bbb-000000000002"
CH_HIDDEN = "00000315-cccc-4ccc-8ccc-000000000003"
CH_NO_SOURCE = "00000378-dddd-4ddd-8ddd-000000000004"
MOVIE_ID = "00000abc-eeee-4eee-8eee-000000000005"
SERIES_ID = "00000def-ffff-4fff-8fff-000000000006"

SID_A = 123
SID_B = 456
SID_HIDDEN = 789
SID_NO_SOURCE = 888

A_UPSTREAM = "https://cdn.example.com/a/index.m3u8?token=1"
B_UPSTREAM = "http://origin.example.com/b/stream.ts"

PASSWORD = "s3cret"
ESCAPED_TITLE = 'Morning <News> & "Weather"'

CHANNELS = [
    {
        "id": CH_A,
        "name": "A",
        "category": "News",
        "logo_url": "https://img.example.com/a.png",
        "epg_id": "a.news",
        "upstream_sources": [{"url": A_UPSTREAM, "quality": "HD"}],
    },
    {
        "id": CH_B,
        "name": "B",
        "category": "Sports",
        "upstream_sources": [
            {"url": B_UPSTREAM, "quality": "SD"},
            {"url": "http://backup.example.com/b.ts"},
        ],
    },
    {
        "id": CH_HIDDEN,
        "name": "C Hidden",
        "category": "Movies",
        "upstream_sources": [{"url": "http://origin.example.com/c.m3u8"}],
        "active": False,
    },
    {
        "id": CH_NO_SOURCE,
        "name": "D",
        "category": "News",
        "upstream_sources": [],
    },
]


async def seed_catalog(store: CatalogStore, now: datetime = None) -> datetime:
    """Load accounts, channels, programmes and VOD rows; returns the reference time."""
    now = now or utcnow()

    await store.store_packages([
        {"id": "pkg-basic", "name": "Basic", "concurrent_limit": 2},
    ])
    await store.store_subscribers([
        {"id": "sub-alice", "username": "alice", "api_password": PASSWORD, "is_trial": True},
        {"id": "sub-bob", "username": "bob", "api_password": PASSWORD, "status": "suspended"},
        {"id": "sub-carol", "username": "carol", "api_password": PASSWORD},
        {"id": "sub-dave", "username": "dave", "api_password": PASSWORD},
        {"id": "sub-erin", "username": "erin", "api_password": PASSWORD},
    ])
    await store.store_subscriptions([
        {"id": "ent-alice", "subscriber_id": "sub-alice", "package_id": "pkg-basic",
         "start_date": now - timedelta(days=1), "end_date": now + timedelta(days=30)},
        {"id": "ent-bob", "subscriber_id": "sub-bob", "package_id": "pkg-basic",
         "end_date": now + timedelta(days=30)},
        {"id": "ent-carol-old", "subscriber_id": "sub-carol", "package_id": "pkg-basic",
         "status": "expired", "end_date": now + timedelta(days=30)},
        {"id": "ent-dave-1", "subscriber_id": "sub-dave", "package_id": "pkg-basic",
         "end_date": now + timedelta(days=30)},
        {"id": "ent-dave-2", "subscriber_id": "sub-dave", "package_id": "pkg-basic",
         "end_date": now + timedelta(days=60)},
        {"id": "ent-erin", "subscriber_id": "sub-erin", "package_id": "pkg-basic",
         "end_date": now - timedelta(days=1)},
    ])

    await store.store_channels(CHANNELS)
    await store.store_programs([
        {"id": "p-a-now", "channel_id": CH_A, "program_id": "ext-1", "title": ESCAPED_TITLE,
         "description": "Top stories", "category": "News", "rating": "TV-G",
         "start_time": now - timedelta(minutes=30), "end_time": now + timedelta(minutes=30)},
        {"id": "p-a-next", "channel_id": CH_A, "title": "Midday Report",
         "start_time": now + timedelta(minutes=30), "end_time": now + timedelta(minutes=90)},
        {"id": "p-a-past", "channel_id": CH_A, "title": "Overnight",
         "start_time": now - timedelta(hours=3), "end_time": now - timedelta(hours=2)},
        {"id": "p-a-far", "channel_id": CH_A, "title": "Next Week",
         "start_time": now + timedelta(days=10), "end_time": now + timedelta(days=10, hours=1)},
        {"id": "p-b-next", "channel_id": CH_B, "title": "Match Day",
         "start_time": now + timedelta(hours=1), "end_time": now + timedelta(hours=2)},
        {"id": "p-hidden", "channel_id": CH_HIDDEN, "title": "Hidden Show",
         "start_time": now, "end_time": now + timedelta(hours=1)},
    ])

    await store.store_movies([
        {"id": MOVIE_ID, "name": "Big Film", "category": "Action", "year": 2021,
         "rating": 7.4, "duration_minutes": 125, "container_extension": "mkv"},
    ])
    await store.store_series([
        {"id": SERIES_ID, "title": "Long Show", "category": "Drama", "seasons": 2, "episodes": 20},
    ])
    await store.store_bouquets([
        {"id": "1", "name": "Favourites", "channel_ids": [CH_A, CH_B, "missing-channel"]},
    ])
    return now


async def make_store(tmp_path, seed: bool = True) -> CatalogStore:
    store = CatalogStore(str(tmp_path / "xtream.db"))
    await store.initialize()
    if seed:
        await seed_catalog(store)
    return store
