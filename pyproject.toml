[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "n64runtime"
version = "0.1.0"
description = "Runtime support for statically recompiled N64 programs: BPS patching, RDRAM and RSP memory, ROM validation, PI DMA and saving"
requires-python = ">=3.10"
dependencies = []
keywords = ["n64", "recompilation", "runtime", "bps", "rsp", "rdram", "emulation"]
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
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["n64runtime"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
