"""Test environment and script-opts configuration"""

import os

import config


def test_defaults(monkeypatch, tmp_path):
    for name in ("LISTENBRAINZ_USER_TOKEN", "LISTENBRAINZ_CACHE_PATH", "ONLY_SCROBBLE_IF_MBID",
                 "CONNECTIVITY_CHECK_URL", "LOG_LEVEL", "MPV_SOCKET", "LISTENBRAINZ_API_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

    settings = config.from_env()

    assert settings.token is None
    assert settings.api_url == "https://api.listenbrainz.org"
    assert settings.cache_path == os.path.join(str(tmp_path), "listenbrainz")
    assert settings.only_scrobble_if_mbid is False
    assert settings.connectivity_check_url is None
    assert settings.log_level == "INFO"


def test_from_env(monkeypatch):
    monkeypatch.setenv("LISTENBRAINZ_USER_TOKEN", "abc")
    monkeypatch.setenv("LISTENBRAINZ_CACHE_PATH", "/data/lb")
    monkeypatch.setenv("ONLY_SCROBBLE_IF_MBID", "yes")
    monkeypatch.setenv("CONNECTIVITY_CHECK_URL", "https://example.org")
    monkeypatch.setenv("CONNECTIVITY_INTERVAL", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = config.from_env()

    assert settings.token == "abc"
    assert settings.cache_path == "/data/lb"
    assert settings.only_scrobble_if_mbid is True
    assert settings.connectivity_check_url == "https://example.org"
    assert settings.connectivity_interval == 1.0
    assert settings.log_level == "DEBUG"


def test_script_opts_override():
    settings = config.Settings(token="env", cache_path="/env")

    updated = settings.with_script_opts({
        "listenbrainz-user-token": " opts ",
        "listenbrainz-cache-path": "/music/cache",
        "unrelated": "x",
    })

    assert updated.token == "opts"
    assert updated.cache_path == os.path.join("/music/cache", "listenbrainz")
    assert settings.token == "env"


def test_empty_script_opts():
    settings = config.Settings(token="env")
    assert settings.with_script_opts(None) is settings
    assert settings.with_script_opts({}) is settings
