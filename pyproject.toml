[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "udpcall"
version = "0.1.0"
description = "XDR-encoded method-call messages sent over UDP as numbered fragments"
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "udp", "xdr", "multicast", "broadcast", "fragmentation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["udpcall"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
