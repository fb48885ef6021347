# distlabs

A few small, self-contained distributed-systems tools:

- **`distlabs.wordcount`** finds the top *k* words of a text file.
- **`distlabs.parallelsum`** sums the integers in a file with several worker threads.
- **`distlabs.mapreduce`** holds the parts of a MapReduce framework: map and reduce task bodies, a JSON-line RPC layer over UNIX-domain sockets, and a worker that serves tasks.
- **`distlabs.snapshot`** is a discrete-time simulator of servers that pass tokens to each other. It takes consistent global snapshots with the Chandy-Lamport algorithm.

The package uses only the standard library and needs Python 3.10 or later. The socket-based parts need a POSIX system.

## Installation

```console
pip install .
```

To run the tests:

```console
pip install ".[test]"
pytest
```

## Word counts

```python
from distlabs.wordcount import top_words

for wc in top_words("book.txt", 5, 6):
    print(wc)            # e.g. "people: 10"
```

Matching ignores case. Words keep only ASCII letters and digits, so `don't` counts as `dont`. A word is counted only if it has at least `char_threshold` characters. The results are `WordCount` objects sorted by count in descending order, with ties broken alphabetically. `sort_word_counts` applies the same ordering to a list of your own. A negative `num_words` raises `ValueError`.

## Parallel sum

```python
from distlabs.parallelsum import parallel_sum

total = parallel_sum(10, "numbers.txt")   # 10 worker threads share the numbers
```

The file holds integers separated by whitespace. A token that is not an integer raises `ValueError`, and so does asking for fewer than one worker. `read_ints` reads such integers from any text stream.

## MapReduce building blocks

### Running tasks directly

`distlabs.mapreduce.tasks` provides the two task bodies. Both read and write files in the current directory:

- `do_map(job_name, map_task_number, in_file, n_reduce, map_f)` calls `map_f(in_file, contents)`. It then splits the returned `KeyValue` pairs across `n_reduce` intermediate files by `ihash(key) % n_reduce`. Each file is named `reduce_name(job_name, map_task_number, r)`.
- `do_reduce(job_name, reduce_task_number, n_map, reduce_f)` collects the pairs for one reduce task from all `n_map` map tasks. It calls `reduce_f(key, values)` for each key and writes the results, sorted by key, to `merge_name(job_name, reduce_task_number)`.

Intermediate and result files hold one JSON object per line, of the form `{"Key": ..., "Value": ...}`.

```python
from distlabs.mapreduce.common import KeyValue
from distlabs.mapreduce.tasks import do_map, do_reduce

def count_map(document, text):
    return [KeyValue(word, "1") for word in text.split()]

def count_reduce(key, values):
    return str(len(values))

files = ["a.txt", "b.txt"]
for i, name in enumerate(files):
    do_map("wc", i, name, 3, count_map)
for r in range(3):
    do_reduce("wc", r, len(files), count_reduce)
# results are now in mrtmp.wc-res-0 .. mrtmp.wc-res-2
```

### RPC and workers

`distlabs.mapreduce.rpc` offers two sides of a connection:

- `RpcServer(address, receiver)` serves an object's methods on a UNIX-domain socket. The receiver's class name is the service name. Its `rpc_methods` lists the exposed CamelCase names, so `DoTask` calls `do_task`.
- `call(srv, rpc_name, args)` sends one request and returns the reply. It raises `RpcError` if the server cannot be reached or reports an error.

The messages are `DoTaskArgs`, `RegisterArgs` and `ShutdownReply`.

`distlabs.mapreduce.worker.run_worker(master_address, me, map_func, reduce_func, n_rpc)` serves `Worker.DoTask` and `Worker.Shutdown` at the socket path `me`. First it sends `Master.Register` to `master_address`, and prints a message if that fails. It then runs until a shutdown request arrives or it has accepted `n_rpc` connections; a negative `n_rpc` means no limit. It returns the `Worker`, whose `n_tasks` counts the tasks it completed.

### What is not included

The package has no master: nothing here schedules tasks on registered workers, merges the per-task results into one output file, or cleans up intermediate files. There are also no ready-made word-count or inverted-index applications and no command-line programs. To run a job, call `do_map` and `do_reduce` yourself as shown above. To use workers, send `Worker.DoTask` requests to them with `call` from your own code.

## Chandy-Lamport snapshots

`distlabs.snapshot.simulator.Simulator` models servers joined by one-way links. Messages on a link are delivered in order, after a random delay of up to `MAX_DELAY` time steps. For reproducible runs, pass a seeded `random.Random` as `rng`.

```python
import random
from distlabs.snapshot.messages import PassTokenEvent, SnapshotEvent
from distlabs.snapshot.simulator import Simulator

sim = Simulator(random.Random(1))
sim.add_server("N1", 1)
sim.add_server("N2", 0)
sim.add_forward_link("N1", "N2")
sim.add_forward_link("N2", "N1")

sim.inject_event(SnapshotEvent("N1"))        # snapshot 0
sim.inject_event(PassTokenEvent("N1", "N2", 1))

state = None
while state is None:
    sim.tick()
    state = sim.collect_snapshot(0)
print(state.tokens, [str(m.message) for m in state.messages])
```

`collect_snapshot` returns `None` while some server has not finished the snapshot. It raises `KeyError` for a snapshot that was never started. A finished `SnapshotState` holds:

- the tokens recorded on each server;
- the `SnapshotMessage`s that were in flight on the links.

`sim.logger.pretty_print()` writes every event, grouped by time step.

The building blocks can also be used on their own:

- `Server` in `distlabs.snapshot.server`;
- `EventQueue` and `SyncMap` in `distlabs.snapshot.structures`;
- `Logger` and `LogEvent` in `distlabs.snapshot.logger`.