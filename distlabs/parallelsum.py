"""Sum integers from a file using several worker threads."""

from __future__ import annotations

import queue
import re
import threading
from typing import TextIO

_INTEGER = re.compile(r"[+-]?[0-9]+")


def read_ints(stream: TextIO) -> list[int]:
    """Read whitespace-separated integers from ``stream``.

    Raises ValueError on the first token that is not an integer.
    """
    values = []
    for line in stream:
        for token in line.split():
            if not _INTEGER.fullmatch(token):
                raise ValueError(f"invalid integer: {token!r}")
            values.append(int(token))
    return values


def sum_worker(nums: queue.Queue, out: queue.Queue) -> None:
    """Sum numbers taken from ``nums`` until ``None`` arrives, then put the sum on ``out`` once."""
    out.put(sum(iter(nums.get, None)))


def parallel_sum(num: int, file_name: str) -> int:
    """Return the sum of the integers in ``file_name``, computed by ``num`` worker threads."""
    if num < 1:
        raise ValueError(f"need at least one worker, got {num}")

    with open(file_name, encoding="utf-8") as stream:
        nums = read_ints(stream)

    inbox: queue.Queue = queue.Queue()
    results: queue.Queue = queue.Queue()
    workers = [
        threading.Thread(target=sum_worker, args=(inbox, results), daemon=True)
        for _ in range(num)
    ]
    for worker in workers:
        worker.start()

    for n in nums:
        inbox.put(n)
    for _ in workers:
        inbox.put(None)

    total = sum(results.get() for _ in workers)
    for worker in workers:
        worker.join()
    return total