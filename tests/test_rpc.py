import os
import shutil
import tempfile

import pytest

from distlabs.mapreduce.common import JobPhase
from distlabs.mapreduce.rpc import (
    DoTaskArgs,
    RegisterArgs,
    RpcError,
    RpcServer,
    ShutdownReply,
    call,
)


class Ledger:
    rpc_methods = frozenset({"Record", "Fail"})

    def __init__(self):
        self.seen = []

    def record(self, args):
        self.seen.append(args)
        return ShutdownReply(len(self.seen))

    def fail(self, args):
        raise ValueError("ledger is closed")

    def hidden(self, args):
        return ShutdownReply(0)


@pytest.fixture
def sock_dir():
    directory = tempfile.mkdtemp(prefix="rpc-")
    yield directory
    shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture
def served(sock_dir):
    address = os.path.join(sock_dir, "ledger")
    ledger = Ledger()
    server = RpcServer(address, ledger).start()
    yield address, ledger, server
    server.close()


def test_call_returns_reply_from_receiver(served):
    address, ledger, _ = served
    reply = call(address, "Ledger.Record", RegisterArgs("w1"))
    assert reply == ShutdownReply(1)
    assert ledger.seen == [RegisterArgs("w1")]


def test_do_task_args_round_trip(served):
    address, ledger, _ = served
    args = DoTaskArgs("job", "in.txt", JobPhase.REDUCE, 3, 7)
    call(address, "Ledger.Record", args)
    assert ledger.seen == [args]
    assert ledger.seen[0].phase is JobPhase.REDUCE


def test_call_without_args_passes_none(served):
    address, ledger, _ = served
    call(address, "Ledger.Record")
    call(address, "Ledger.Record")
    assert ledger.seen == [None, None]


def test_unknown_service_is_an_error(served):
    address, ledger, _ = served
    with pytest.raises(RpcError, match="can't find method"):
        call(address, "Other.Record", RegisterArgs("w1"))
    assert ledger.seen == []


def test_unexposed_method_is_an_error(served):
    address, _, _ = served
    with pytest.raises(RpcError, match="can't find method"):
        call(address, "Ledger.Hidden")


def test_handler_exception_becomes_rpc_error(served):
    address, _, _ = served
    with pytest.raises(RpcError, match="ledger is closed"):
        call(address, "Ledger.Fail")


def test_unreachable_server(sock_dir):
    with pytest.raises(RpcError):
        call(os.path.join(sock_dir, "nobody"), "Ledger.Record")


def test_closed_server_refuses_calls(served):
    address, _, server = served
    server.close()
    assert server.done.is_set()
    assert not os.path.exists(address)
    with pytest.raises(RpcError):
        call(address, "Ledger.Record")


def test_max_connections_limits_calls(sock_dir):
    address = os.path.join(sock_dir, "limited")
    ledger = Ledger()
    server = RpcServer(address, ledger)
    server.max_connections = 1
    with server:
        assert call(address, "Ledger.Record", RegisterArgs("a")) == ShutdownReply(1)
        assert server.done.wait(5)
        with pytest.raises(RpcError):
            call(address, "Ledger.Record", RegisterArgs("b"))
    assert ledger.seen == [RegisterArgs("a")]


def test_unsendable_args_rejected(served):
    address, ledger, _ = served
    with pytest.raises(TypeError):
        call(address, "Ledger.Record", {"worker": "w"})
    assert ledger.seen == []


def test_phase_accepts_wire_string():
    args = DoTaskArgs("job", "f", "Map", 0, 1)
    assert args.phase is JobPhase.MAP
    with pytest.raises(ValueError):
        DoTaskArgs("job", "f", "Shuffle", 0, 1)