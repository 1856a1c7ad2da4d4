[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "reactornet"
version = "0.1.0"
description = "A multi-reactor TCP networking library: one event loop per thread, round-robin connection dispatch."
requires-python = ">=3.10"
dependencies = []
keywords = ["reactor", "event loop", "tcp", "server", "networking", "non-blocking", "io multiplexing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["reactornet*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
