[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gossipmembership"
version = "0.1.0"
description = "Gossip-style membership and failure detection running on an emulated network"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "gossip",
    "membership",
    "failure-detection",
    "distributed-systems",
    "simulation",
    "heartbeat",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
gossipmembership = "gossipmembership.application:main"

[tool.hatch.build.targets.wheel]
packages = ["gossipmembership"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
