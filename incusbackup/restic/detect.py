"""Locate the restic binary and check its version."""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass

REQUIRED_VERSION = "0.18.0"
"""The minimum restic release that is supported."""

_DEFAULT_TIMEOUT = 5.0

_VERSION_RE = re.compile(r"restic\s+([0-9]+\.[0-9]+\.[0-9]+(?:-[A-Za-z0-9.]+)?)")
_INT_RE = re.compile(r"[+-]?[0-9]+")


class ResticError(Exception):
    """A restic command could not be run or reported a failure."""


@dataclass(frozen=True)
class BinaryInfo:
    """A detected restic command-line binary."""

    path: str
    version: str


def detect(timeout: float | None = None) -> BinaryInfo:
    """Find restic on PATH and query its version.

    ``timeout`` bounds the version query; it defaults to five seconds.
    """
    exe = shutil.which("restic")
    if exe is None:
        raise ResticError("restic binary not found on PATH")
    version = _query_version(exe, _DEFAULT_TIMEOUT if timeout is None else timeout)
    return BinaryInfo(path=exe, version=version)


def is_compatible(version: str) -> bool:
    """Report whether ``version`` satisfies the minimum supported release."""
    left = _parse_sem_version(version)
    right = _parse_sem_version(REQUIRED_VERSION)
    if left is None or right is None:
        return False
    return _compare_sem_version(left, right) >= 0


def extract_version(output: str) -> str:
    """Return the restic version found in command output, or "" if none."""
    for line in output.splitlines():
        match = _VERSION_RE.search(line)
        if match:
            return match.group(1)
    return ""


def _query_version(exe: str, timeout: float) -> str:
    try:
        result = subprocess.run(
            [exe, "version"],
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ResticError(f"restic: version command timed out after {timeout}s") from exc
    except OSError as exc:
        raise ResticError(f"restic: start version command: {exc}") from exc

    version = extract_version(result.stdout or "")
    if not version:
        version = extract_version(result.stderr or "")
    if not version:
        raise ResticError("restic: could not parse version output")
    if result.returncode != 0:
        raise ResticError(
            f"restic: version command failed: exit status {result.returncode}"
        )
    return version


@dataclass(frozen=True)
class _SemVersion:
    major: int
    minor: int
    patch: int
    pre: str


def _parse_sem_version(text: str) -> _SemVersion | None:
    text = text.strip()
    if not text:
        return None
    core, _, pre = text.partition("-")
    nums = core.split(".")
    if len(nums) != 3 or not all(_INT_RE.fullmatch(n) for n in nums):
        return None
    major, minor, patch = (int(n) for n in nums)
    return _SemVersion(major, minor, patch, pre)


def _compare_sem_version(a: _SemVersion, b: _SemVersion) -> int:
    left = (a.major, a.minor, a.patch)
    right = (b.major, b.minor, b.patch)
    if left != right:
        return 1 if left > right else -1
    if a.pre == b.pre:
        return 0
    if not a.pre:
        return 1
    if not b.pre:
        return -1
    return 1 if a.pre > b.pre else -1