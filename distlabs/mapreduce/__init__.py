"""MapReduce task bodies, a UNIX-socket RPC layer and a task-serving worker."""

__all__ = ["common", "tasks", "rpc", "worker"]