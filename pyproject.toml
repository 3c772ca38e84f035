[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "raftlog"
version = "0.1.0"
description = "The replicated log of the Raft consensus protocol: stable storage view, unstable tail and apply tracking."
requires-python = ">=3.10"
dependencies = []
keywords = ["raft", "consensus", "replicated log", "distributed systems"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["raftlog"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
