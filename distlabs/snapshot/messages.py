"""Messages, events and snapshot records of the token-passing system."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TokenMessage:
    """Transfer of tokens from one server to another."""

    num_tokens: int

    def __str__(self) -> str:
        return f"token({self.num_tokens})"


@dataclass(frozen=True)
class MarkerMessage:
    """Marker that carries a snapshot forward."""

    snapshot_id: int

    def __str__(self) -> str:
        return f"marker({self.snapshot_id})"


@dataclass(frozen=True)
class SendMessageEvent:
    """A message queued on a link, received at or after ``receive_time``."""

    src: str
    dest: str
    message: Any
    receive_time: int


@dataclass(frozen=True)
class ReceivedMessageEvent:
    """Log record: a server received a message."""

    src: str
    dest: str
    message: Any

    def __str__(self) -> str:
        msg = self.message
        if isinstance(msg, TokenMessage):
            return f"{self.dest} received {msg.num_tokens} tokens from {self.src}"
        if isinstance(msg, MarkerMessage):
            return f"{self.dest} received marker({msg.snapshot_id}) from {self.src}"
        return f"Unrecognized message: {msg}"


@dataclass(frozen=True)
class SentMessageEvent:
    """Log record: a server sent a message."""

    src: str
    dest: str
    message: Any

    def __str__(self) -> str:
        msg = self.message
        if isinstance(msg, TokenMessage):
            return f"{self.src} sent {msg.num_tokens} tokens to {self.dest}"
        if isinstance(msg, MarkerMessage):
            return f"{self.src} sent marker({msg.snapshot_id}) to {self.dest}"
        return f"Unrecognized message: {msg}"


@dataclass(frozen=True)
class StartSnapshot:
    """Log record: a snapshot began on a server."""

    server_id: str
    snapshot_id: int

    def __str__(self) -> str:
        return f"{self.server_id} startSnapshot({self.snapshot_id})"


@dataclass(frozen=True)
class EndSnapshot:
    """Log record: a snapshot finished on a server."""

    server_id: str
    snapshot_id: int

    def __str__(self) -> str:
        return f"{self.server_id} endSnapshot({self.snapshot_id})"


@dataclass(frozen=True)
class PassTokenEvent:
    """Injected event: ``src`` passes ``tokens`` tokens to ``dest``."""

    src: str
    dest: str
    tokens: int


@dataclass(frozen=True)
class SnapshotEvent:
    """Injected event: start a snapshot on ``server_id``."""

    server_id: str


@dataclass(frozen=True)
class SnapshotMessage:
    """A message recorded as in flight during a snapshot."""

    src: str
    dest: str
    message: Any


@dataclass
class SnapshotState:
    """The global state collected by one snapshot."""

    snapshot_id: int
    tokens: dict[str, int] = field(default_factory=dict)
    messages: list[SnapshotMessage] = field(default_factory=list)


def sorted_keys(mapping: Mapping) -> list[str]:
    """Return the keys of ``mapping`` as strings, in sorted order."""
    if not isinstance(mapping, Mapping):
        raise TypeError(f"Attempted to access sorted keys of a non-map: {mapping!r}")
    return sorted(str(key) for key in mapping)