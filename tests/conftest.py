"""Test configuration and fixtures"""

from collections import deque
from unittest.mock import Mock

import pytest

from listenbrainz_client import ListenBrainzClient
from scrobble_cache import ScrobbleCache
from state import ScrobbleStateMachine

API = "https://api.listenbrainz.org"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePlayer:
    """Property bag standing in for mpv; missing properties raise LookupError."""

    def __init__(self, **props):
        self.props = dict(props)
        self.events = deque()
        self.messages = []

    def get_property(self, name):
        if name not in self.props:
            raise LookupError(name)
        return self.props[name]

    def next_event(self, timeout):
        return self.events.popleft() if self.events else None

    def show_text(self, text):
        self.messages.append(text)


def tagged_track(**overrides):
    props = {
        "filename": "01 - song.flac",
        "path": "/music/01 - song.flac",
        "metadata": {
            "ARTIST": "Artist",
            "TITLE": "Song",
            "ALBUM": "Album",
            "MUSICBRAINZ_ALBUMID": "release-1",
            "MUSICBRAINZ_ARTISTID": "artist-1; artist-2",
            "MUSICBRAINZ_TRACKID": "recording-1",
        },
        "duration": 200.0,
        "speed": 1.0,
        "time-pos": 0.0,
        "audio-pts": 0.0,
        "pause": False,
    }
    props.update(overrides)
    return props


@pytest.fixture
def clock():
    return FakeClock(1000.0)


@pytest.fixture
def wall_clock():
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def player():
    return FakePlayer(**tagged_track())


@pytest.fixture
def client():
    return Mock(spec=ListenBrainzClient)


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "listenbrainz"


@pytest.fixture
def cache(cache_dir, client):
    return ScrobbleCache(str(cache_dir), client)


@pytest.fixture
def machine(player, client, cache, clock, wall_clock):
    return ScrobbleStateMachine(
        player, client, cache,
        online=True,
        notify=player.show_text,
        clock=clock,
        wall_clock=wall_clock,
    )
