"""Word counting, concurrent sums, MapReduce building blocks and distributed snapshots."""

__version__ = "0.1.0"