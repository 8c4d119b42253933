[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wsclient"
version = "0.1.0"
description = "A small polling WebSocket client built on the standard library alone"
requires-python = ">=3.10"
dependencies = []
keywords = ["websocket", "client", "rfc6455", "networking"]
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
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["wsclient"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
