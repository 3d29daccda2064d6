"""
Tests for XMLTV rendering.
"""
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone

from xtream_gateway.models.channel import Channel
from xtream_gateway.models.epg import Program
from xtream_gateway.services.xmltv import build_xmltv, xmltv_channel_id, xmltv_window

NOW = datetime(2025, 12, 12, 4, 0, tzinfo=timezone.utc)

CHANNEL_A = Channel(id="0000007b-aaaa-4aaa-8aaa-000000000001", name="A & Friends",
                    epg_id="a.news", logo_url="https://img.example.com/a.png?x=1&y=2")
CHANNEL_B = Channel(id="000001c8-bbbb-4bbb-8bbb-000000000002", name="B")


def _program(pid, channel, title, hours=0, **extra):
    return Program(id=pid, channel_id=channel.id, title=title,
                   start_time=NOW + timedelta(hours=hours),
                   end_time=NOW + timedelta(hours=hours + 1), **extra)


def test_window():
    start, end = xmltv_window(NOW)
    assert start == NOW - timedelta(hours=24)
    assert end == NOW + timedelta(days=7)


def test_channel_key_falls_back_to_stream_id():
    assert xmltv_channel_id(CHANNEL_A) == "a.news"
    assert xmltv_channel_id(CHANNEL_B) == "456"


def test_one_channel_element_per_referenced_channel():
    programs = [
        _program("1", CHANNEL_A, "First"),
        _program("2", CHANNEL_A, "Second", hours=1),
        _program("3", CHANNEL_B, "Third"),
    ]
    root = ET.fromstring(build_xmltv(programs, [CHANNEL_A, CHANNEL_B]).split("\n", 2)[2])

    assert [c.get("id") for c in root.findall("channel")] == ["a.news", "456"]
    assert [p.get("channel") for p in root.findall("programme")] == ["a.news", "a.news", "456"]
    assert root.findall("programme")[0].get("start") == "20251212040000 +0000"
    assert root.findall("programme")[0].get("stop") == "20251212050000 +0000"


def test_channels_sharing_a_guide_id_share_one_element():
    simulcast = Channel(id="00000315-cccc-4ccc-8ccc-000000000003", name="A HD", epg_id="a.news")
    programs = [
        _program("1", CHANNEL_A, "Morning"),
        _program("2", simulcast, "Morning HD"),
    ]
    root = ET.fromstring(build_xmltv(programs, [CHANNEL_A, simulcast]).split("\n", 2)[2])

    channels = root.findall("channel")
    assert [c.get("id") for c in channels] == ["a.news"]
    assert channels[0].find("display-name").text == "A & Friends"
    assert [p.get("channel") for p in root.findall("programme")] == ["a.news", "a.news"]


def test_channels_without_programmes_are_omitted():
    xml = build_xmltv([_program("1", CHANNEL_B, "Only B")], [CHANNEL_A, CHANNEL_B])
    assert 'channel id="a.news"' not in xml
    assert '<channel id="456">' in xml


def test_programmes_for_unknown_channels_are_dropped():
    ghost = Channel(id="00000999-0000-4000-8000-000000000000", name="Ghost")
    xml = build_xmltv([_program("1", ghost, "Boo")], [CHANNEL_A])
    assert "<programme" not in xml
    assert "<channel" not in xml


def test_escaping():
    programs = [_program("1", CHANNEL_A, 'Tom & Jerry <"Live"> \'ok\'',
                         description="a<b", category="Kids & Family", rating="TV-Y")]
    xml = build_xmltv(programs, [CHANNEL_A])

    assert "<title>Tom &amp; Jerry &lt;&quot;Live&quot;&gt; &#x27;ok&#x27;</title>" in xml
    assert "<desc>a&lt;b</desc>" in xml
    assert "<display-name>A &amp; Friends</display-name>" in xml
    assert 'src="https://img.example.com/a.png?x=1&amp;y=2"' in xml
    assert "<value>TV-Y</value>" in xml

    root = ET.fromstring(xml.split("\n", 2)[2])
    assert root.find("programme/title").text == 'Tom & Jerry <"Live"> \'ok\''
