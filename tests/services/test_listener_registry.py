# tests/services/test_listener_registry.py
from eval_bar.services.listener_registry import BroadcastChannel, ListenerRegistry


def test_broadcast_reaches_every_listener():
    registry = ListenerRegistry()
    seen_a, seen_b = [], []
    registry.add(seen_a.append)
    registry.add(seen_b.append)
    registry.broadcast("readyok")
    assert seen_a == ["readyok"]
    assert seen_b == ["readyok"]

def test_add_and_discard_are_idempotent():
    registry = ListenerRegistry()
    seen = []
    registry.add(seen.append)
    registry.add(seen.append)
    assert len(registry) == 1
    registry.discard(seen.append)
    registry.discard(seen.append)
    assert len(registry) == 0

def test_failing_listener_does_not_block_others():
    registry = ListenerRegistry()
    seen = []

    def broken(line):
        raise RuntimeError("boom")

    registry.add(broken)
    registry.add(seen.append)
    registry.broadcast("bestmove e2e4")
    assert seen == ["bestmove e2e4"]

def test_listener_may_unsubscribe_during_broadcast():
    registry = ListenerRegistry()
    seen = []

    def once(line):
        registry.discard(once)

    registry.add(once)
    registry.add(seen.append)
    registry.broadcast("uciok")
    assert seen == ["uciok"]
    assert once not in registry

def test_closed_channel_drops_lines():
    registry = ListenerRegistry()
    seen = []
    registry.add(seen.append)
    channel = BroadcastChannel(registry, "lite")
    channel.publish("info depth 1 score cp 10")
    channel.close()
    channel.publish("info depth 2 score cp 20")
    assert seen == ["info depth 1 score cp 10"]
    assert channel.closed
