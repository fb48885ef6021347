"""Per-time-step log of what happened on each server."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, TextIO

from .messages import (
    EndSnapshot,
    ReceivedMessageEvent,
    SentMessageEvent,
    StartSnapshot,
    TokenMessage,
)


@dataclass(frozen=True)
class LogEvent:
    """An event on a server, with the server's tokens before the event."""

    server_id: str
    server_tokens: int
    event: Any

    def __str__(self) -> str:
        event = self.event
        if isinstance(event, (SentMessageEvent, ReceivedMessageEvent)):
            with_tokens = isinstance(event.message, TokenMessage)
        elif isinstance(event, StartSnapshot):
            with_tokens = True
        elif isinstance(event, EndSnapshot):
            with_tokens = False
        else:
            raise TypeError(f"Attempted to log unrecognized event: {event!r}")
        if with_tokens:
            return f"{self.server_id} has {self.server_tokens} token(s)\n\t{event}"
        return str(event)


class Logger:
    """Events grouped by the time step at which they occurred."""

    def __init__(self) -> None:
        self.epochs: list[list[LogEvent]] = []

    def pretty_print(self, out: TextIO | None = None) -> None:
        """Write every non-empty time step and its events to ``out`` (stdout by default)."""
        out = sys.stdout if out is None else out
        for epoch, events in enumerate(self.epochs):
            if events:
                out.write(f"Time {epoch}:\n")
            for event in events:
                out.write(f"\t{event}\n")

    def new_epoch(self) -> None:
        """Start a new time step."""
        self.epochs.append([])

    def record_event(self, server: Any, event: Any) -> None:
        """Record ``event`` on ``server`` in the current time step."""
        if not self.epochs:
            raise RuntimeError("no time step started; call new_epoch first")
        self.epochs[-1].append(LogEvent(server.server_id, server.tokens, event))