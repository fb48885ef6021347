import random

import pytest

from distlabs.snapshot.messages import (
    PassTokenEvent,
    SnapshotEvent,
    SnapshotMessage,
    TokenMessage,
)
from distlabs.snapshot.simulator import MAX_DELAY, Simulator

SEED = 8053172852482175524


class _ZeroDelay:
    def randrange(self, n):
        return 0


def read_topology(text, sim):
    servers_left = -1
    for line in text.strip().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if servers_left < 0:
            servers_left = int(line)
            continue
        first, second = line.split()
        if servers_left > 0:
            sim.add_server(first, int(second))
            servers_left -= 1
        else:
            sim.add_forward_link(first, second)


def inject_events(text, sim):
    pending = []
    for line in text.strip().splitlines():
        parts = line.split()
        if not parts or parts[0].startswith("#"):
            continue
        if parts[0] == "send":
            sim.inject_event(PassTokenEvent(parts[1], parts[2], int(parts[3])))
        elif parts[0] == "snapshot":
            pending.append(sim.next_snapshot_id)
            sim.inject_event(SnapshotEvent(parts[1]))
        elif parts[0] == "tick":
            for _ in range(int(parts[1]) if len(parts) > 1 else 1):
                sim.tick()
        else:
            raise ValueError(parts[0])

    snapshots = []
    for _ in range(10000):
        if not pending:
            break
        still = []
        for snapshot_id in pending:
            snap = sim.collect_snapshot(snapshot_id)
            if snap is None:
                still.append(snapshot_id)
            else:
                snapshots.append(snap)
        pending = still
        if pending:
            sim.tick()
    assert not pending, "snapshots never completed"
    for _ in range(MAX_DELAY + 1):
        sim.tick()
    return sorted(snapshots, key=lambda s: s.snapshot_id)


def total_tokens(snap):
    return sum(snap.tokens.values()) + sum(
        m.message.num_tokens for m in snap.messages if isinstance(m.message, TokenMessage)
    )


TWO_NODES = """
2
N1 10
N2 10
N1 N2
N2 N1
"""

FOUR_NODES = """
4
N1 20
N2 15
N3 5
N4 0
N1 N2
N2 N1
N1 N3
N3 N1
N2 N3
N3 N4
N4 N1
N4 N2
"""


def make_sim(topology):
    sim = Simulator(random.Random(SEED))
    read_topology(topology, sim)
    return sim


def test_two_nodes_simple_snapshot():
    sim = make_sim(TWO_NODES)
    snaps = inject_events("snapshot N1\ntick 10", sim)
    assert len(snaps) == 1
    assert snaps[0].snapshot_id == 0
    assert snaps[0].tokens == {"N1": 10, "N2": 10}
    assert snaps[0].messages == []


def test_two_nodes_message_in_flight_is_recorded():
    sim = make_sim(TWO_NODES)
    snaps = inject_events("send N1 N2 1\nsnapshot N2", sim)
    assert snaps[0].tokens == {"N1": 9, "N2": 10}
    assert snaps[0].messages == [SnapshotMessage("N1", "N2", TokenMessage(1))]
    assert sim.servers["N2"].tokens == 11


def test_message_after_marker_is_not_recorded():
    sim = make_sim(TWO_NODES)
    snaps = inject_events("snapshot N1\nsend N1 N2 1", sim)
    assert snaps[0].tokens == {"N1": 10, "N2": 10}
    assert snaps[0].messages == []
    assert total_tokens(snaps[0]) == 20


def test_collect_returns_none_until_complete():
    sim = make_sim(TWO_NODES)
    sim.start_snapshot("N1")
    assert sim.collect_snapshot(0) is None


def test_collect_unknown_snapshot_raises():
    sim = make_sim(TWO_NODES)
    with pytest.raises(KeyError):
        sim.collect_snapshot(3)


def test_start_snapshot_unknown_server_raises():
    sim = make_sim(TWO_NODES)
    with pytest.raises(KeyError):
        sim.start_snapshot("N9")


def test_add_forward_link_unknown_server_raises():
    sim = make_sim(TWO_NODES)
    with pytest.raises(KeyError):
        sim.add_forward_link("N1", "N7")


def test_inject_unknown_event_raises():
    sim = make_sim(TWO_NODES)
    with pytest.raises(TypeError):
        sim.inject_event("bogus")


def test_send_more_tokens_than_held_raises():
    sim = make_sim(TWO_NODES)
    with pytest.raises(ValueError):
        sim.inject_event(PassTokenEvent("N1", "N2", 11))


def test_receive_time_within_delay_bounds():
    sim = Simulator(random.Random(SEED))
    sim.tick()
    sim.tick()
    times = {sim.get_receive_time() for _ in range(200)}
    assert min(times) >= 3
    assert max(times) <= 2 + MAX_DELAY


def test_tick_delivers_one_message_per_sender_per_step():
    sim = Simulator(_ZeroDelay())
    read_topology(TWO_NODES, sim)
    sim.inject_event(PassTokenEvent("N1", "N2", 1))
    sim.inject_event(PassTokenEvent("N1", "N2", 2))
    sim.tick()
    assert sim.time == 1
    assert sim.servers["N2"].tokens == 11
    sim.tick()
    assert sim.servers["N2"].tokens == 13
    assert sim.servers["N1"].tokens == 7


def test_snapshot_ids_increase():
    sim = make_sim(TWO_NODES)
    sim.inject_event(SnapshotEvent("N1"))
    sim.inject_event(SnapshotEvent("N2"))
    assert sim.next_snapshot_id == 2
    for _ in range(30):
        sim.tick()
    assert sim.collect_snapshot(0).snapshot_id == 0
    assert sim.collect_snapshot(1).snapshot_id == 1