import logging

import config
from connectivity import ConnectivityGate
from events import ConnectivityChanged
from listenbrainz_client import ListenBrainzClient
from mpv_ipc import MpvClient, MpvConnectionError
from scrobble_cache import ScrobbleCache
from state import ScrobbleStateMachine
from tags import read_recording_id

log = logging.getLogger("mpv-listenbrainz")


def run(player, machine: ScrobbleStateMachine, gate: ConnectivityGate) -> None:
    """Single-threaded loop: player events, connectivity polls and the deadline."""
    while not machine.stopped:
        timeout = machine.scheduler.timeout()
        check = gate.timeout_until_check()
        if check is not None:
            timeout = min(timeout, check)

        event = player.next_event(timeout)
        if event is not None:
            machine.handle(event)
            if machine.stopped:
                break

        online = gate.poll()
        if online is not None:
            machine.handle(ConnectivityChanged(online))

        machine.scheduler.run_due()


def main():
    settings = config.from_env()

    # -------------------------
    # Logging setup
    # -------------------------
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,  # ensure our config is used even if libs pre-configure logging
    )

    player = MpvClient(settings.mpv_socket)
    try:
        player.connect()
    except MpvConnectionError as e:
        raise SystemExit(f"{e} (start mpv with --input-ipc-server={settings.mpv_socket})")

    try:
        settings = settings.with_script_opts(player.get_property("script-opts"))
    except LookupError:
        pass

    if not settings.token:
        raise SystemExit("LISTENBRAINZ_USER_TOKEN or script-opts listenbrainz-user-token is required")

    client = ListenBrainzClient(settings.token, settings.api_url, settings.timeout)
    cache = ScrobbleCache(settings.cache_path, client)
    gate = ConnectivityGate(settings.connectivity_check_url, settings.connectivity_interval)
    machine = ScrobbleStateMachine(
        player, client, cache,
        online=gate.online(),
        strict=settings.only_scrobble_if_mbid,
        lookup_recording_id=read_recording_id,
        notify=player.show_text,
    )

    log.info("Starting mpv → ListenBrainz bridge %s", config.VERSION)
    log.info("mpv socket: %s | API: %s | Cache: %s (pending=%s)",
             settings.mpv_socket, settings.api_url, settings.cache_path, cache.size())

    if machine.online:
        cache.reconcile()

    try:
        run(player, machine, gate)
    except MpvConnectionError as e:
        log.warning("Lost connection to mpv: %s", e)
    finally:
        player.close()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        log.info("Shutting down…")
