[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "distlabs"
version = "0.1.0"
description = "Small distributed-systems building blocks: word counting, concurrent sums, MapReduce tasks and workers, and a Chandy-Lamport snapshot simulator"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mapreduce",
    "distributed-systems",
    "chandy-lamport",
    "snapshot",
    "word-count",
    "rpc",
    "simulation",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["distlabs"]

[tool.hatch.build.targets.sdist]
include = ["distlabs", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
