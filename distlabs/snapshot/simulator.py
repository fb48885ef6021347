"""Discrete-time simulator driving servers through token passing and snapshots."""

from __future__ import annotations

import random
from typing import Any

from .logger import Logger
from .messages import (
    EndSnapshot,
    PassTokenEvent,
    ReceivedMessageEvent,
    SnapshotEvent,
    SnapshotState,
    StartSnapshot,
    sorted_keys,
)
from .server import Server

MAX_DELAY = 5
"""Largest random delay, in time steps, added to a message's delivery."""


class Simulator:
    """Entry point of the distributed snapshot system.

    Events at time ``t + 1`` come strictly after events at time ``t``. At each
    step the simulator looks at the messages queued on every link and delivers
    those that are due. It starts snapshots, makes servers pass tokens, and
    collects the global state once a snapshot has finished everywhere.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.time = 0
        self.next_snapshot_id = 0
        self.servers: dict[str, Server] = {}
        self.logger = Logger()
        self.logger.new_epoch()
        self.rng = rng if rng is not None else random.Random()
        # Servers that have not yet finished each snapshot.
        self._awaiting: dict[int, set[str]] = {}

    def get_receive_time(self) -> int:
        """Time step at which a message sent now becomes deliverable.

        Only one message per link is delivered each step, so it may arrive later.
        """
        return self.time + 1 + self.rng.randrange(MAX_DELAY)

    def add_server(self, server_id: str, tokens: int) -> None:
        """Add a server holding ``tokens`` tokens."""
        self.servers[server_id] = Server(server_id, tokens, self)

    def add_forward_link(self, src: str, dest: str) -> None:
        """Add a one-way link from ``src`` to ``dest``."""
        for server_id in (src, dest):
            if server_id not in self.servers:
                raise KeyError(f"Server {server_id} does not exist")
        self.servers[src].add_outbound_link(self.servers[dest])

    def inject_event(self, event: Any) -> None:
        """Run a token-passing or snapshot event in the system."""
        if isinstance(event, PassTokenEvent):
            src = self.servers.get(event.src)
            if src is None:
                raise KeyError(f"Server {event.src} does not exist")
            src.send_tokens(event.tokens, event.dest)
        elif isinstance(event, SnapshotEvent):
            self.start_snapshot(event.server_id)
        else:
            raise TypeError(f"Error unknown event: {event!r}")

    def tick(self) -> None:
        """Advance one time step and deliver the messages that are due.

        Servers and links are visited in sorted order so that delivery is
        deterministic; at most one message leaves each server per step.
        """
        self.time += 1
        self.logger.new_epoch()
        for server_id in sorted_keys(self.servers):
            server = self.servers[server_id]
            for dest in sorted_keys(server.outbound_links):
                events = server.outbound_links[dest].events
                if events.empty():
                    continue
                event = events.peek()
                if event.receive_time <= self.time:
                    events.pop()
                    receiver = self.servers[event.dest]
                    self.logger.record_event(
                        receiver,
                        ReceivedMessageEvent(event.src, event.dest, event.message),
                    )
                    receiver.handle_packet(event.src, event.message)
                    break

    def start_snapshot(self, server_id: str) -> None:
        """Start a new snapshot at ``server_id``; its id is ``next_snapshot_id``."""
        server = self.servers.get(server_id)
        if server is None:
            raise KeyError(f"Server ID '{server_id}' doesn't exist")
        snapshot_id = self.next_snapshot_id
        self.next_snapshot_id += 1
        self._awaiting[snapshot_id] = set(self.servers)
        server.start_snapshot(snapshot_id)
        self.logger.record_event(server, StartSnapshot(server_id, snapshot_id))

    def notify_snapshot_complete(self, server_id: str, snapshot_id: int) -> None:
        """Record that snapshot ``snapshot_id`` has finished on ``server_id``."""
        server = self.servers.get(server_id)
        if server is None:
            raise KeyError(f"Server ID '{server_id}' doesn't exist")
        self.logger.record_event(server, EndSnapshot(server_id, snapshot_id))
        self._awaiting.setdefault(snapshot_id, set()).discard(server_id)

    def collect_snapshot(self, snapshot_id: int) -> SnapshotState | None:
        """Merge the state every server recorded for ``snapshot_id``.

        Returns None while some server has not finished the snapshot.
        Raises KeyError for a snapshot that was never started.
        """
        if snapshot_id not in self._awaiting:
            raise KeyError(f"Snapshot {snapshot_id} was never started")
        if self._awaiting[snapshot_id]:
            return None
        state = SnapshotState(snapshot_id)
        for server_id in sorted_keys(self.servers):
            server = self.servers[server_id]
            if snapshot_id in server.snapshots:
                local = server.snapshots.load(snapshot_id)
                state.tokens[server_id] = local.tokens
                state.messages.extend(local.messages)
        return state