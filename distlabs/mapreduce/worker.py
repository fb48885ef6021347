"""A worker that waits for map, reduce and shutdown requests from the master."""

from __future__ import annotations

import threading

from .common import JobPhase
from .rpc import DoTaskArgs, RegisterArgs, RpcError, RpcServer, ShutdownReply, call
from .tasks import MapFunc, ReduceFunc, do_map, do_reduce

_POLL = 0.05


class Worker:
    """State of a server waiting for DoTask or Shutdown calls."""

    rpc_methods = frozenset({"DoTask", "Shutdown"})

    def __init__(
        self, name: str, map_func: MapFunc, reduce_func: ReduceFunc, n_rpc: int
    ) -> None:
        self.name = name
        self.map_func = map_func
        self.reduce_func = reduce_func
        self.n_rpc = n_rpc
        self.n_tasks = 0
        self.stopped = threading.Event()
        self._lock = threading.Lock()

    def do_task(self, args: DoTaskArgs) -> None:
        """Run the map or reduce task the master scheduled on this worker."""
        if args.phase is JobPhase.MAP:
            do_map(
                args.job_name, args.task_number, args.file, args.num_other_phase, self.map_func
            )
        else:
            do_reduce(args.job_name, args.task_number, args.num_other_phase, self.reduce_func)
        with self._lock:
            self.n_tasks += 1

    def shutdown(self, args: object = None) -> ShutdownReply:
        """Report the number of tasks processed and ask the worker to stop."""
        with self._lock:
            reply = ShutdownReply(self.n_tasks)
        self.stopped.set()
        return reply

    def register(self, master: str) -> None:
        """Tell the master this worker exists and is ready to work."""
        try:
            call(master, "Master.Register", RegisterArgs(self.name))
        except RpcError:
            print(f"Register: RPC {master} register error")


def run_worker(
    master_address: str,
    me: str,
    map_func: MapFunc,
    reduce_func: ReduceFunc,
    n_rpc: int,
) -> Worker:
    """Serve tasks at address ``me`` until shut down or ``n_rpc`` connections are used.

    A negative ``n_rpc`` means no limit. Returns the worker once it has stopped.
    """
    worker = Worker(me, map_func, reduce_func, n_rpc)
    server = RpcServer(me, worker)
    server.max_connections = None if n_rpc < 0 else n_rpc
    server.start()
    try:
        worker.register(master_address)
        while not server.done.wait(_POLL):
            if worker.stopped.is_set():
                break
    finally:
        server.close()
    return worker