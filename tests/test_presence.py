from chatd.presence import PresenceRegistry, Sink


def test_set_online_overwrites_and_returns_previous() -> None:
    reg = PresenceRegistry()
    first, second = Sink(), Sink()

    assert reg.set_online("alice", first) is None
    assert reg.set_online("alice", second) is first
    assert reg.lookup("alice") is second


def test_remove_by_name_is_unconditional() -> None:
    reg = PresenceRegistry()
    reg.set_online("alice", Sink())

    assert reg.remove_online("alice") is True
    assert reg.lookup("alice") is None
    assert reg.remove_online("alice") is False


def test_stale_session_cannot_remove_newer_entry() -> None:
    reg = PresenceRegistry()
    old, new = Sink(), Sink()
    reg.set_online("alice", old)
    reg.set_online("alice", new)

    assert reg.remove_online("alice", old) is False
    assert reg.lookup("alice") is new

    assert reg.remove_online("alice", new) is True
    assert "alice" not in reg


def test_sink_tokens_are_unique() -> None:
    tokens = {Sink().token for _ in range(100)}
    assert len(tokens) == 100


def test_sink_put_queues_in_order() -> None:
    sink = Sink()
    sink.put("one")
    sink.put("two")
    assert sink.pending() == 2
    assert sink.queue.get_nowait() == "one"
    assert sink.queue.get_nowait() == "two"
