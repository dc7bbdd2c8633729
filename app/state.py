import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from config import SUBMISSION_CLIENT, VERSION
from events import (
    ClientMessage, ConnectivityChanged, FileLoaded, PlaybackRestart, PropertyChange, Seek, Shutdown,
)
from listenbrainz_client import (
    ListenBrainzClient, ListenBrainzError, LISTEN_PLAYING_NOW, LISTEN_SINGLE,
)
from scheduler import DeadlineScheduler, threshold
from scrobble_cache import ScrobbleCache

log = logging.getLogger("scrobbler")

# mpv exposes the same tag under format-specific names
RELEASE_MBID_KEYS = ("MUSICBRAINZ_ALBUMID", "MusicBrainz Album Id")
ARTIST_MBID_KEYS = ("MUSICBRAINZ_ARTISTID", "MusicBrainz Artist Id")
RECORDING_MBID_KEYS = ("MUSICBRAINZ_TRACKID", "http://musicbrainz.org")
ARTIST_KEYS = ("ARTIST", "artist")
TITLE_KEYS = ("TITLE", "title")
ALBUM_KEYS = ("ALBUM", "album")

FEEDBACK_SCORES = {
    "listenbrainz-love": 1,
    "listenbrainz-hate": -1,
    "listenbrainz-unrate": 0,
}


class State(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    TRACKING = "tracking"
    NOT_ELIGIBLE = "not_eligible"
    PAUSED = "paused"
    FINALIZED = "finalized"


# -------------------------
# Track metadata as ListenBrainz wants it
# -------------------------
@dataclass
class TrackMetadata:
    artist_name: str = ""
    track_name: str = ""
    release_name: str = ""
    release_mbid: str = ""
    artist_mbids: list[str] = field(default_factory=list)
    recording_mbid: str = ""
    duration_ms: int = 0

    def to_payload(self, listened_at: int | None = None) -> dict:
        """Single listen object; empty optional fields are left out entirely."""
        info: dict[str, Any] = {
            "media_player": "mpv",
            "submission_client": SUBMISSION_CLIENT,
            "submission_client_version": VERSION,
        }
        if self.release_mbid:
            info["release_mbid"] = self.release_mbid
        if self.artist_mbids:
            info["artist_mbids"] = list(self.artist_mbids)
        if self.recording_mbid:
            info["recording_mbid"] = self.recording_mbid
        info["duration_ms"] = int(self.duration_ms)

        payload: dict[str, Any] = {}
        if listened_at:
            payload["listened_at"] = int(listened_at)
        payload["track_metadata"] = {
            "additional_info": info,
            "artist_name": self.artist_name,
            "track_name": self.track_name,
            "release_name": self.release_name,
        }
        return payload


def split_artist_mbids(value: str) -> list[str]:
    sep = ";" if ";" in value else "/"
    return [part.strip() for part in value.split(sep) if part.strip()]


def parse_metadata(metadata: dict | None) -> TrackMetadata:
    track = TrackMetadata()
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        value = str(value)
        if key in RELEASE_MBID_KEYS:
            track.release_mbid = value
        elif key in ARTIST_MBID_KEYS:
            track.artist_mbids = split_artist_mbids(value)
        elif key in RECORDING_MBID_KEYS:
            track.recording_mbid = value
        elif key in ARTIST_KEYS:
            track.artist_name = value
        elif key in TITLE_KEYS:
            track.track_name = value
        elif key in ALBUM_KEYS:
            track.release_name = value
    return track


def is_eligible(track: TrackMetadata, filename: str, strict: bool = False) -> bool:
    # Untagged files get their filename as title; treat that as "no tags"
    eligible = (
        filename != track.track_name
        and bool(track.artist_name)
        and bool(track.track_name)
        and bool(track.release_name)
    )
    if strict:
        eligible = eligible and bool(track.release_mbid)
    return eligible


@dataclass
class ListenSession:
    track: TrackMetadata = field(default_factory=TrackMetadata)
    state: State = State.LOADING
    eligible: bool = False
    deadline: float | None = None
    paused_at: float | None = None


class ScrobbleStateMachine:
    """Turns mpv events into now-playing notices, scrobbles and feedback.

    Only the current ListenSession is kept. The deadline is an absolute
    monotonic instant held by the DeadlineScheduler; pausing cancels the timer
    and resuming shifts the deadline by the time spent paused.
    """

    def __init__(self, player, client: ListenBrainzClient, cache: ScrobbleCache, *,
                 online: bool = False, strict: bool = False,
                 lookup_recording_id: Optional[Callable[[str], Optional[str]]] = None,
                 notify: Optional[Callable[[str], None]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time):
        self.player = player
        self.client = client
        self.cache = cache
        self.online = online
        self.strict = strict
        self.lookup_recording_id = lookup_recording_id
        self.notify = notify
        self.clock = clock
        self.wall_clock = wall_clock
        self.scheduler = DeadlineScheduler(self.on_deadline, clock)
        self.session: ListenSession | None = None
        self.stopped = False

    @property
    def state(self) -> State:
        return self.session.state if self.session else State.IDLE

    # -------- player access --------
    def _get(self, name: str, default=None):
        try:
            value = self.player.get_property(name)
        except LookupError:
            return default
        return default if value is None else value

    def _get_float(self, name: str, default: float | None = None) -> float | None:
        value = self._get(name)
        if value is None:
            return default
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def _tell(self, message: str, level: int = logging.INFO) -> None:
        log.log(level, message)
        if self.notify is not None:
            self.notify(message)

    # -------- dispatch --------
    def handle(self, event) -> None:
        if self.stopped:
            return
        if isinstance(event, Shutdown):
            log.info("mpv is shutting down")
            self.stopped = True
        elif isinstance(event, (FileLoaded, PlaybackRestart)):
            self._on_load()
        elif isinstance(event, Seek):
            self._on_seek()
        elif isinstance(event, PropertyChange):
            if event.name == "pause":
                self._on_pause(bool(event.value))
            elif event.name == "speed" and event.value is not None:
                self._on_speed(float(event.value))
        elif isinstance(event, ClientMessage):
            self._on_client_message(event.args)
        elif isinstance(event, ConnectivityChanged):
            self.set_online(event.online)

    # -------- track lifecycle --------
    def _on_load(self) -> None:
        audio_pts = self._get_float("audio-pts")
        if audio_pts is not None and audio_pts >= 1:
            # Resuming mid-file, not a fresh start
            return

        self.scheduler.cancel()
        session = ListenSession(track=parse_metadata(self._get("metadata")))
        self.session = session
        track = session.track

        filename = str(self._get("filename", ""))
        session.eligible = is_eligible(track, filename, self.strict)

        if not track.recording_mbid and self.lookup_recording_id is not None:
            path = self._get("path")
            if path:
                track.recording_mbid = self.lookup_recording_id(str(path)) or ""

        duration = self._get_float("duration")
        if session.eligible and duration is None:
            log.debug("No duration for %s; cannot time a scrobble", filename)
            session.eligible = False

        if not session.eligible:
            session.state = State.NOT_ELIGIBLE
            log.debug("Not scrobbling %r: artist=%r title=%r album=%r",
                      filename, track.artist_name, track.track_name, track.release_name)
            return

        speed = self._get_float("speed", 1.0)
        position = self._get_float("time-pos", 0.0)
        now = self.clock()
        track.duration_ms = int(duration * 1000)
        session.deadline = now + max(0.0, threshold(duration, speed) - position)

        if self._get("pause", False):
            session.state = State.PAUSED
            session.paused_at = now
        else:
            session.state = State.TRACKING
            self.scheduler.arm(session.deadline)

        log.info("Now playing: %s - %s [%s], scrobble in %.0fs",
                 track.artist_name, track.track_name, track.release_name,
                 session.deadline - now)
        if self.online:
            self.submit_now_playing()

    def _restart_window(self, session: ListenSession, duration: float, speed: float,
                        position: float) -> None:
        now = self.clock()
        session.track.duration_ms = int(duration * 1000)
        session.deadline = now + max(0.0, threshold(duration, speed) - position)
        if session.state == State.PAUSED:
            # Stay suspended; resume counts from here
            session.paused_at = now
        else:
            self.scheduler.reschedule(session.deadline)

    def _on_pause(self, paused: bool) -> None:
        session = self.session
        if session is None:
            return
        now = self.clock()
        if paused and session.state == State.TRACKING:
            session.paused_at = now
            session.state = State.PAUSED
            self.scheduler.cancel()
        elif not paused and session.state == State.PAUSED:
            session.deadline += now - session.paused_at
            session.paused_at = None
            session.state = State.TRACKING
            self.scheduler.arm(session.deadline)

    def _on_speed(self, speed: float) -> None:
        session = self.session
        if session is None or session.state not in (State.TRACKING, State.PAUSED):
            return
        if speed <= 0:
            log.debug("Ignoring non-positive speed %s", speed)
            return
        duration = self._get_float("duration")
        if duration is None:
            return
        self._restart_window(session, duration, speed, self._get_float("time-pos", 0.0))

    def _on_seek(self) -> None:
        session = self.session
        if session is None or session.state not in (State.TRACKING, State.PAUSED):
            return
        position = self._get_float("time-pos")
        if position is None or int(position) != 0:
            return
        duration = self._get_float("duration")
        if duration is None:
            return
        self._restart_window(session, duration, self._get_float("speed", 1.0), 0.0)

    # -------- delivery --------
    def on_deadline(self) -> None:
        session = self.session
        if session is None or not session.eligible or session.state != State.TRACKING:
            return
        session.state = State.FINALIZED
        payload = session.track.to_payload(listened_at=int(self.wall_clock()))

        if self.online:
            try:
                self.client.submit_listen(LISTEN_SINGLE, [payload])
            except ListenBrainzError as e:
                log.warning("Scrobble failed, caching: %s", e)
            else:
                log.info("Scrobbled: %s - %s", session.track.artist_name, session.track.track_name)
                self.cache.reconcile()
                return
        self.cache.persist(payload)

    def submit_now_playing(self) -> None:
        """Best-effort; failures are logged and never retried or cached."""
        if self.session is None:
            return
        try:
            self.client.submit_listen(LISTEN_PLAYING_NOW, [self.session.track.to_payload()])
        except ListenBrainzError as e:
            log.debug("playing_now failed: %s", e)

    def set_online(self, online: bool) -> None:
        self.online = online
        if not online:
            return
        self.cache.reconcile()
        if self.state in (State.TRACKING, State.PAUSED):
            self.submit_now_playing()

    # -------- feedback --------
    def _on_client_message(self, args: tuple) -> None:
        if not args:
            return
        if args[0] == "key-binding":
            if len(args) < 2:
                return
            # Only act on key down / press, not on release or repeat
            if len(args) > 2 and str(args[2])[:1] in ("u", "r"):
                return
            name = args[1]
        else:
            name = args[0]
        if name in FEEDBACK_SCORES:
            self.submit_feedback(FEEDBACK_SCORES[name])

    def submit_feedback(self, score: int) -> bool:
        recording_mbid = self.session.track.recording_mbid if self.session else ""
        if not recording_mbid:
            self._tell("This song is unknown to ListenBrainz, and cannot be rated", logging.WARNING)
            return False
        if not self.online:
            self._tell("You must be online to submit feedback", logging.WARNING)
            return False
        try:
            self.client.submit_feedback(recording_mbid, score)
        except ListenBrainzError as e:
            self._tell(f"Error submitting feedback: {e}", logging.ERROR)
            return False
        self._tell("Feedback submitted successfully")
        return True
