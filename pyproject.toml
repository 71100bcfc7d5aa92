[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mediasync"
version = "0.1.0"
description = "Share media files between a host and connected clients over a line-based JSON protocol, with web and desktop control panels."
requires-python = ">=3.10"
keywords = ["media", "sync", "streaming", "tcp", "json"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Environment :: X11 Applications",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia",
]
dependencies = [
    "aiohttp",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
mediasync = "mediasync.cli:main"
mediasync-gui = "mediasync.gui:main"

[tool.hatch.build.targets.wheel]
packages = ["mediasync"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
