"""
Pytest configuration and fixtures for Xtream gateway tests.
"""
import os

# Must be set before the application modules read settings
os.environ.setdefault("XTREAM_RATE_LIMIT_ENABLED", "false")

import asyncio
import pytest
from fastapi.testclient import TestClient

from sample_catalog import seed_catalog
from xtream_gateway.main import create_app
from xtream_gateway.services.store import CatalogStore


@pytest.fixture
def store(tmp_path):
    """Seeded catalog store in a temporary database."""
    store = CatalogStore(str(tmp_path / "xtream.db"))
    asyncio.run(store.initialize())
    asyncio.run(seed_catalog(store))
    return store


@pytest.fixture
def client(store):
    """Test client running the full lifespan against the seeded store."""
    with TestClient(create_app(store=store)) as client:
        yield client


@pytest.fixture
def sample_epg_xml():
    """Sample XMLTV EPG content for testing."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<tv>
    <channel id="a.news">
        <display-name>A</display-name>
        <icon src="https://example.com/a.png"/>
    </channel>
    <programme start="20251212010000 +0000" stop="20251212020000 +0000" channel="a.news" id="ext-42">
        <title>Morning News</title>
        <desc>Daily news broadcast</desc>
        <category>News</category>
        <rating system="VCHIP"><value>TV-PG</value></rating>
    </programme>
    <programme start="20251212040000 +0200" stop="20251212050000 +0200" channel="456">
        <title>Match Day</title>
    </programme>
    <programme start="20251212020000 +0000" stop="20251212030000 +0000" channel="unknown.ch">
        <title>Nobody Watches</title>
    </programme>
    <programme start="not-a-date" stop="20251212030000 +0000" channel="a.news">
        <title>Broken</title>
    </programme>
</tv>
"""


@pytest.fixture
def sample_epg_file(sample_epg_xml, tmp_path):
    """Create a temporary EPG XML file for testing."""
    epg_file = tmp_path / "test_guide.xml"
    epg_file.write_text(sample_epg_xml)
    return epg_file
