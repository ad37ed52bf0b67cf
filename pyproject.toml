[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bftnode"
version = "0.1.0"
description = "Building blocks of a PBFT replica node: settings parsing, message and work queues, timers and simulation control"
requires-python = ">=3.10"
dependencies = []
keywords = ["pbft", "byzantine", "consensus", "replication", "queues", "timers"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
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

[project.scripts]
bftnode-config = "bftnode.config:main"

[tool.hatch.build.targets.wheel]
packages = ["bftnode"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
