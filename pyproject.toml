[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sysprog61"
version = "0.1.0"
description = "File wrappers over raw descriptors, a shell command-line parser, a small shell and a socket pipeline runner"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "file-io",
    "file-descriptor",
    "shell",
    "tokenizer",
    "pipeline",
    "sockets",
    "systems-programming",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Shells",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sh61 = "sysprog61.shell:main"
socketpipe = "sysprog61.socketpipe:main"

[tool.hatch.build.targets.wheel]
packages = ["sysprog61"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
