"""Test the event loop wiring"""

from unittest.mock import Mock

from connectivity import ConnectivityGate
from events import FileLoaded, PropertyChange, Shutdown
from main import run
from state import State


class ScriptedGate(ConnectivityGate):
    def __init__(self, transitions):
        super().__init__(None)
        self.transitions = list(transitions)

    def poll(self, now=None):
        return self.transitions.pop(0) if self.transitions else None


def test_loop_scrobbles_and_stops(player, machine, client, clock):
    def next_event(timeout):
        # Simulate waiting out the timeout when nothing is queued
        if player.events:
            return player.events.popleft()
        clock.advance(timeout)
        return None

    player.next_event = next_event
    player.events.extend([FileLoaded(), PropertyChange("speed", 1.0)])
    original = machine.on_deadline

    def on_deadline():
        original()
        player.events.append(Shutdown())

    machine.scheduler.on_deadline = on_deadline

    run(player, machine, ConnectivityGate(None))

    assert machine.stopped
    assert machine.state == State.FINALIZED
    assert [c.args[0] for c in client.submit_listen.call_args_list] == ["playing_now", "single"]


def test_loop_feeds_connectivity_transitions(player, machine, cache):
    machine.online = False
    cache.reconcile = Mock(return_value=True)
    player.events.extend([FileLoaded(), Shutdown()])

    run(player, machine, ScriptedGate([True]))

    assert machine.online is True
    cache.reconcile.assert_called_once_with()
