[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "disasmkit"
version = "0.1.0"
description = "Recursive-descent disassembler primitives for x86 and MIPS binaries"
requires-python = ">=3.10"
dependencies = []
keywords = ["disassembler", "x86", "mips", "basic blocks", "control flow", "decompilation"]
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
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["disasmkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
