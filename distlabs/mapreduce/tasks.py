"""The map and reduce task bodies run by the master or by workers."""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import ExitStack
from pathlib import Path

from .common import KeyValue, ihash, merge_name, reduce_name

MapFunc = Callable[[str, str], "list[KeyValue]"]
ReduceFunc = Callable[[str, "list[str]"], str]

_decoder = json.JSONDecoder()


def _encode(kv: KeyValue) -> str:
    return json.dumps(kv.to_dict(), ensure_ascii=False, separators=(",", ":")) + "\n"


def _decode_stream(text: str) -> Iterator[KeyValue]:
    """Yield pairs from a stream of JSON objects, stopping at the first bad one."""
    pos = 0
    length = len(text)
    while True:
        while pos < length and text[pos].isspace():
            pos += 1
        if pos >= length:
            return
        try:
            obj, pos = _decoder.raw_decode(text, pos)
        except json.JSONDecodeError:
            return
        if not isinstance(obj, dict):
            return
        yield KeyValue.from_dict(obj)


def do_map(
    job_name: str,
    map_task_number: int,
    in_file: str,
    n_reduce: int,
    map_f: MapFunc,
) -> None:
    """Run ``map_f`` over ``in_file`` and partition its output into ``n_reduce`` files."""
    if n_reduce < 1:
        raise ValueError(f"n_reduce must be positive, got {n_reduce}")

    contents = Path(in_file).read_text(encoding="utf-8")
    pairs = map_f(in_file, contents)

    with ExitStack() as stack:
        outputs = [
            stack.enter_context(
                open(reduce_name(job_name, map_task_number, r), "w", encoding="utf-8")
            )
            for r in range(n_reduce)
        ]
        for kv in pairs:
            outputs[ihash(kv.key) % n_reduce].write(_encode(kv))


def do_reduce(
    job_name: str,
    reduce_task_number: int,
    n_map: int,
    reduce_f: ReduceFunc,
) -> None:
    """Gather this task's intermediate pairs, reduce each key, and write sorted results."""
    grouped: defaultdict[str, list[str]] = defaultdict(list)
    for m in range(n_map):
        text = Path(reduce_name(job_name, m, reduce_task_number)).read_text(
            encoding="utf-8"
        )
        for kv in _decode_stream(text):
            grouped[kv.key].append(kv.value)

    with open(merge_name(job_name, reduce_task_number), "w", encoding="utf-8") as out:
        for key in sorted(grouped):
            out.write(_encode(KeyValue(key, reduce_f(key, grouped[key]))))