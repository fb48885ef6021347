"""Servers that pass tokens and take Chandy-Lamport snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .messages import (
    MarkerMessage,
    SendMessageEvent,
    SentMessageEvent,
    SnapshotMessage,
    TokenMessage,
    sorted_keys,
)
from .structures import EventQueue, SyncMap


@dataclass
class Snapshot:
    """The local state one server recorded for a snapshot."""

    snapshot_id: int
    tokens: int
    messages: list[SnapshotMessage] = field(default_factory=list)


@dataclass
class Link:
    """A one-way channel between two servers, holding queued send events."""

    src: str
    dest: str
    events: EventQueue = field(default_factory=EventQueue)


class Server:
    """A participant in the snapshot protocol.

    Token messages move tokens between servers; marker messages carry a
    snapshot forward. ``sim`` supplies ``logger``, ``get_receive_time()`` and
    ``notify_snapshot_complete(server_id, snapshot_id)``.
    """

    def __init__(self, server_id: str, tokens: int, sim: Any) -> None:
        self.server_id = server_id
        self.tokens = tokens
        self.sim = sim
        self.outbound_links: dict[str, Link] = {}  # keyed by link.dest
        self.inbound_links: dict[str, Link] = {}  # keyed by link.src
        self.snapshots = SyncMap()  # snapshot id -> Snapshot
        # Inbound channels still being recorded, per snapshot.
        self._recording: dict[int, set[str]] = {}
        # Inbound channels a marker has arrived on, per snapshot.
        self._markers_received: dict[int, set[str]] = {}

    def add_outbound_link(self, dest: "Server") -> None:
        """Add a one-way link from this server to ``dest``."""
        if dest is self:
            return
        link = Link(self.server_id, dest.server_id)
        self.outbound_links[dest.server_id] = link
        dest.inbound_links[self.server_id] = link

    def send_to_neighbors(self, message: Any) -> None:
        """Send ``message`` on every outbound link, in order of destination."""
        for dest in sorted_keys(self.outbound_links):
            link = self.outbound_links[dest]
            self.sim.logger.record_event(
                self, SentMessageEvent(self.server_id, link.dest, message)
            )
            link.events.push(
                SendMessageEvent(
                    self.server_id, link.dest, message, self.sim.get_receive_time()
                )
            )

    def send_tokens(self, num_tokens: int, dest: str) -> None:
        """Send ``num_tokens`` tokens to the neighbour ``dest``."""
        if self.tokens < num_tokens:
            raise ValueError(
                f"Server {self.server_id} attempted to send {num_tokens} tokens "
                f"when it only has {self.tokens}"
            )
        link = self.outbound_links.get(dest)
        if link is None:
            raise KeyError(f"Unknown dest ID {dest} from server {self.server_id}")
        message = TokenMessage(num_tokens)
        self.sim.logger.record_event(
            self, SentMessageEvent(self.server_id, dest, message)
        )
        self.tokens -= num_tokens
        link.events.push(
            SendMessageEvent(self.server_id, dest, message, self.sim.get_receive_time())
        )

    def handle_packet(self, src: str, message: Any) -> None:
        """Process a message received from ``src``."""
        if isinstance(message, TokenMessage):
            self._handle_token(src, message)
        elif isinstance(message, MarkerMessage):
            self._handle_marker(src, message)
        else:
            raise TypeError(
                f"Server {self.server_id} received unrecognized message: {message!r}"
            )

    def _handle_token(self, sender: str, message: TokenMessage) -> None:
        self.tokens += message.num_tokens
        for snapshot_id, snapshot in self.snapshots.items():
            if sender in self._recording.get(snapshot_id, ()):
                snapshot.messages.append(
                    SnapshotMessage(sender, self.server_id, message)
                )

    def _handle_marker(self, sender: str, message: MarkerMessage) -> None:
        snapshot_id = message.snapshot_id
        _, already_taken = self.snapshots.load_or_store(
            snapshot_id, Snapshot(snapshot_id, self.tokens)
        )
        if already_taken:
            self._recording[snapshot_id].discard(sender)
        else:
            self.handle_snapshot(sender, snapshot_id)

        received = self._markers_received[snapshot_id]
        received.add(sender)
        if len(received) == len(self.inbound_links):
            self.sim.notify_snapshot_complete(self.server_id, snapshot_id)

    def handle_snapshot(self, src: str, snapshot_id: int) -> None:
        """Join a snapshot on the first marker, which came from ``src``.

        Every inbound channel except the one from ``src`` is recorded, and
        markers are sent to all neighbours.
        """
        self._recording[snapshot_id] = {
            link_src for link_src in sorted_keys(self.inbound_links) if link_src != src
        }
        self._markers_received[snapshot_id] = set()
        self.send_to_neighbors(MarkerMessage(snapshot_id))

    def start_snapshot(self, snapshot_id: int) -> None:
        """Begin snapshot ``snapshot_id`` on this server."""
        self._recording[snapshot_id] = set(sorted_keys(self.inbound_links))
        self._markers_received[snapshot_id] = set()
        self.snapshots.store(snapshot_id, Snapshot(snapshot_id, self.tokens))
        self.send_to_neighbors(MarkerMessage(snapshot_id))