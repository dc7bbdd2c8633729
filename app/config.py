"""
Runtime configuration, read once from environment variables.

mpv's own `script-opts` (listenbrainz-user-token, listenbrainz-cache-path)
take precedence over the environment when present.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, replace

from listenbrainz_client import DEFAULT_API_URL

VERSION = "1.0.0"
SUBMISSION_CLIENT = "mpv ListenBrainz Python"

_TRUE = {"1", "true", "yes", "on"}


def default_cache_path() -> str:
    base = os.getenv("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, "listenbrainz")


@dataclass(frozen=True)
class Settings:
    token: str | None = None
    api_url: str = DEFAULT_API_URL
    cache_path: str = ""
    timeout: float = 10
    only_scrobble_if_mbid: bool = False
    mpv_socket: str = "/tmp/mpvsocket"
    connectivity_check_url: str | None = None
    connectivity_interval: float = 30
    log_level: str = "INFO"

    def with_script_opts(self, opts: dict | None) -> "Settings":
        opts = opts or {}
        changes = {}
        token = opts.get("listenbrainz-user-token")
        if token:
            changes["token"] = token.strip()
        cache_dir = opts.get("listenbrainz-cache-path")
        if cache_dir:
            changes["cache_path"] = os.path.join(os.path.expanduser(cache_dir), "listenbrainz")
        return replace(self, **changes) if changes else self


def from_env() -> Settings:
    return Settings(
        token=os.getenv("LISTENBRAINZ_USER_TOKEN") or None,
        api_url=os.getenv("LISTENBRAINZ_API_URL", DEFAULT_API_URL),
        cache_path=os.getenv("LISTENBRAINZ_CACHE_PATH") or default_cache_path(),
        timeout=float(os.getenv("LISTENBRAINZ_TIMEOUT", "10")),
        only_scrobble_if_mbid=os.getenv("ONLY_SCROBBLE_IF_MBID", "").strip().lower() in _TRUE,
        mpv_socket=os.getenv("MPV_SOCKET", "/tmp/mpvsocket"),
        connectivity_check_url=os.getenv("CONNECTIVITY_CHECK_URL") or None,
        connectivity_interval=max(1.0, float(os.getenv("CONNECTIVITY_INTERVAL", "30"))),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
