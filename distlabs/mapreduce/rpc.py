"""A small request/response RPC layer over UNIX-domain sockets.

Each request is one JSON line naming ``"Service.Method"`` and carrying an
argument message; the server answers with one JSON line holding either the
reply message or an error. Services are objects whose class name is the
service name and whose ``rpc_methods`` attribute lists the exposed methods in
CamelCase; ``DoTask`` is dispatched to the method ``do_task``.
"""

from __future__ import annotations

import dataclasses
import json
import os
import re
import socket
import threading
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .common import JobPhase

_CALL_TIMEOUT = 60.0
_ACCEPT_POLL = 0.05
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class RpcError(Exception):
    """The server could not be reached or the call failed on the server."""


@dataclass
class DoTaskArgs:
    """Arguments passed to a worker when a task is scheduled on it."""

    job_name: str
    file: str  # input file, only used in map tasks
    phase: JobPhase
    task_number: int  # this task's index in the current phase
    # Number of tasks in the other phase: output bins for mappers,
    # input files for reducers.
    num_other_phase: int

    def __post_init__(self) -> None:
        self.phase = JobPhase(self.phase)


@dataclass
class ShutdownReply:
    """Reply to a worker shutdown: how many tasks the worker processed."""

    ntasks: int


@dataclass
class RegisterArgs:
    """Argument passed when a worker registers with the master."""

    worker: str


_MESSAGE_TYPES = {cls.__name__: cls for cls in (DoTaskArgs, ShutdownReply, RegisterArgs)}


def _encode(message: Any) -> dict | None:
    if message is None:
        return None
    name = type(message).__name__
    if _MESSAGE_TYPES.get(name) is not type(message):
        raise TypeError(f"cannot send {type(message).__name__} over RPC")
    fields = {
        key: value.value if isinstance(value, Enum) else value
        for key, value in dataclasses.asdict(message).items()
    }
    return {"type": name, "fields": fields}


def _decode(data: Any) -> Any:
    if data is None:
        return None
    try:
        cls = _MESSAGE_TYPES[data["type"]]
        return cls(**data["fields"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RpcError(f"malformed message: {data!r}") from exc


def _method_name(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class RpcServer:
    """Serves the exposed methods of ``receiver`` on a UNIX-domain socket.

    Set ``max_connections`` before ``start`` to stop accepting after that many
    connections; ``None`` accepts until closed. ``done`` is set once the
    server has stopped listening.
    """

    def __init__(self, address: str | os.PathLike, receiver: Any) -> None:
        self.address = os.fspath(address)
        self.receiver = receiver
        self.service = type(receiver).__name__
        self.max_connections: int | None = None
        self.done = threading.Event()
        self._closing = threading.Event()
        self._listener: socket.socket | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> "RpcServer":
        """Bind the socket and accept connections in a background thread."""
        if self._listener is not None:
            raise RuntimeError(f"server on {self.address} already started")
        with suppress(FileNotFoundError):
            os.remove(self.address)
        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            listener.bind(self.address)
            listener.listen()
            listener.settimeout(_ACCEPT_POLL)
        except OSError:
            listener.close()
            raise
        self._listener = listener
        self._thread = threading.Thread(
            target=self._accept_loop, name=f"rpc-{self.address}", daemon=True
        )
        self._thread.start()
        return self

    def close(self) -> None:
        """Stop accepting connections and wait until the listener is gone."""
        self._closing.set()
        thread = self._thread
        if thread is None:
            self.done.set()
        elif thread is not threading.current_thread():
            thread.join()

    def __enter__(self) -> "RpcServer":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _accept_loop(self) -> None:
        listener = self._listener
        remaining = self.max_connections
        try:
            while not self._closing.is_set() and (remaining is None or remaining > 0):
                try:
                    conn, _ = listener.accept()
                except TimeoutError:
                    continue
                except OSError:
                    break
                conn.settimeout(None)
                if remaining is not None:
                    remaining -= 1
                threading.Thread(target=self._serve, args=(conn,), daemon=True).start()
        finally:
            listener.close()
            with suppress(OSError):
                os.remove(self.address)
            self.done.set()

    def _serve(self, conn: socket.socket) -> None:
        try:
            with conn, conn.makefile("rwb") as stream:
                for line in stream:
                    response = self._dispatch(line)
                    stream.write(json.dumps(response).encode("utf-8") + b"\n")
                    stream.flush()
        except OSError:
            pass

    def _dispatch(self, line: bytes) -> dict:
        try:
            request = json.loads(line)
            full_name = request["method"]
            service, _, method = full_name.partition(".")
            exposed = getattr(self.receiver, "rpc_methods", ())
            if service != self.service or method not in exposed:
                raise RpcError(f"rpc: can't find method {full_name}")
            handler = getattr(self.receiver, _method_name(method))
            reply = handler(_decode(request.get("args")))
            return {"reply": _encode(reply)}
        except Exception as exc:  # every failure is reported to the caller
            return {"error": str(exc) or type(exc).__name__}


def call(srv: str | os.PathLike, rpc_name: str, args: Any = None) -> Any:
    """Invoke ``rpc_name`` on the server at ``srv`` and return its reply.

    Raises RpcError if the server cannot be reached, closes the connection
    without answering, or reports an error.
    """
    request = json.dumps({"method": rpc_name, "args": _encode(args)}).encode("utf-8")
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(_CALL_TIMEOUT)
            sock.connect(os.fspath(srv))
            sock.sendall(request + b"\n")
            with sock.makefile("rb") as stream:
                line = stream.readline()
    except OSError as exc:
        raise RpcError(f"{rpc_name} on {srv}: {exc}") from exc
    if not line:
        raise RpcError(f"{rpc_name} on {srv}: connection closed without reply")
    try:
        response = json.loads(line)
    except ValueError as exc:
        raise RpcError(f"{rpc_name} on {srv}: malformed reply") from exc
    if "error" in response:
        raise RpcError(response["error"])
    return _decode(response.get("reply"))