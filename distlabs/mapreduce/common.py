"""Types and naming helpers shared by the map/reduce framework."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

_FNV32_OFFSET = 2166136261
_FNV32_PRIME = 16777619


class JobPhase(str, Enum):
    """Whether a task is scheduled as a map or a reduce task."""

    MAP = "Map"
    REDUCE = "Reduce"


@dataclass(frozen=True)
class KeyValue:
    """A key/value pair passed to the map and reduce functions."""

    key: str
    value: str

    def to_dict(self) -> dict[str, str]:
        """Return the wire form used in intermediate and result files."""
        return {"Key": self.key, "Value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "KeyValue":
        """Build a pair from its wire form; missing fields become empty strings."""
        return cls(str(data.get("Key", "")), str(data.get("Value", "")))


def reduce_name(job_name: str, map_task: int, reduce_task: int) -> str:
    """Name of the file map task ``map_task`` produces for reduce task ``reduce_task``."""
    return f"mrtmp.{job_name}-{map_task}-{reduce_task}"


def merge_name(job_name: str, reduce_task: int) -> str:
    """Name of the output file of reduce task ``reduce_task``."""
    return f"mrtmp.{job_name}-res-{reduce_task}"


def ihash(s: str) -> int:
    """32-bit FNV-1a hash of the UTF-8 bytes of ``s``."""
    h = _FNV32_OFFSET
    for byte in s.encode("utf-8"):
        h = ((h ^ byte) * _FNV32_PRIME) & 0xFFFFFFFF
    return h