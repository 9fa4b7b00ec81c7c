[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wxmsgdump"
version = "0.1.0"
description = "Decrypt, merge and browse the encrypted SQLite message databases of a desktop chat client"
requires-python = ">=3.10"
keywords = ["chat", "sqlite", "decrypt", "messages", "export", "lz4"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Database",
]
dependencies = [
    "cryptography",
    "lz4",
]

[project.optional-dependencies]
test = [
    "pytest",
    "cryptography",
    "lz4",
]

[project.scripts]
wxmsgdump = "wxmsgdump.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["wxmsgdump"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
