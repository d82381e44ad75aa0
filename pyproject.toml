[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "incusbackup"
version = "0.0.0.dev0"
description = "Confirmation prompts, progress reporting and restic repository helpers for Incus backups"
requires-python = ">=3.10"
dependencies = []
keywords = ["incus", "backup", "restic", "progress", "confirmation"]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["incusbackup"]

[tool.hatch.build.targets.sdist]
include = ["incusbackup", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
