"""A discrete-time simulator of the Chandy-Lamport snapshot algorithm."""

__all__ = ["messages", "structures", "logger", "server", "simulator"]