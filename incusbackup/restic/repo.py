"""Repository operations carried out through the restic command line."""

from __future__ import annotations

import codecs
import io
import json
import os
import re
import shutil
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Iterable, TextIO

from incusbackup.restic.detect import BinaryInfo, ResticError

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_FRACTION_RE = re.compile(r"\.(\d+)")
_CHUNK = 64 * 1024


@dataclass
class Snapshot:
    """A restic snapshot as reported by ``restic snapshots --json``."""

    id: str = ""
    short_id: str = ""
    time: datetime = _ZERO_TIME
    tags: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)

    def tag_map(self) -> dict[str, str]:
        """Turn ``key=value`` tags into a dict; bare tags map to ""."""
        out: dict[str, str] = {}
        for tag in self.tags:
            key, sep, value = tag.partition("=")
            if sep:
                out[key] = value
            else:
                out[tag] = ""
        return out


def ensure_repository(binary: BinaryInfo, repo: str) -> None:
    """Make sure ``repo`` is an initialised repository, running init if needed."""
    try:
        _probe_snapshots(binary, repo, use_limit=True)
        return
    except ResticError as exc:
        message = str(exc)
        if not _is_unknown_limit_flag(message):
            if _is_not_repository(message):
                _init_repository(binary, repo)
                return
            raise
    # Older restic releases do not know --limit.
    try:
        _probe_snapshots(binary, repo, use_limit=False)
    except ResticError as exc:
        if _is_not_repository(str(exc)):
            _init_repository(binary, repo)
            return
        raise


def backup_stream(
    binary: BinaryInfo,
    repo: str,
    filename: str,
    tags: Iterable[str],
    stream: BinaryIO,
    progress: TextIO | None = None,
) -> None:
    """Run ``restic backup --stdin`` fed from ``stream``."""
    args = ["backup", "--stdin", "--stdin-filename", filename]
    for tag in tags:
        args += ["--tag", tag]
    try:
        proc = subprocess.Popen(
            [binary.path, *args],
            env=_repo_env(repo),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE if progress is not None else subprocess.DEVNULL,
            stderr=subprocess.STDOUT if progress is not None else subprocess.DEVNULL,
        )
    except OSError as exc:
        raise ResticError(f"restic: start backup: {exc}") from exc

    copy_errors: list[BaseException] = []

    def feed() -> None:
        try:
            shutil.copyfileobj(stream, proc.stdin, _CHUNK)
        except Exception as exc:  # reported after the process finishes
            copy_errors.append(exc)
        finally:
            try:
                proc.stdin.close()
            except OSError:
                pass

    feeder = threading.Thread(target=feed, daemon=True)
    feeder.start()
    if progress is not None:
        _relay_text(proc.stdout, progress)
    returncode = proc.wait()
    feeder.join()
    if copy_errors:
        raise ResticError(f"restic: stream backup data: {copy_errors[0]}") from copy_errors[0]
    if returncode != 0:
        raise ResticError(f"restic: backup failed: exit status {returncode}")


def backup_bytes(
    binary: BinaryInfo,
    repo: str,
    filename: str,
    tags: Iterable[str],
    data: bytes,
    progress: TextIO | None = None,
) -> None:
    """Back up a small in-memory payload such as a manifest or checksums."""
    backup_stream(binary, repo, filename, tags, io.BytesIO(data), progress)


def dump(
    binary: BinaryInfo,
    repo: str,
    snapshot_id: str,
    path: str,
    out: BinaryIO,
    progress: TextIO | None = None,
) -> None:
    """Write ``path`` from a snapshot to ``out`` via ``restic dump``."""
    try:
        proc = subprocess.Popen(
            [binary.path, "dump", snapshot_id, path],
            env=_repo_env(repo),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE if progress is not None else subprocess.DEVNULL,
        )
    except OSError as exc:
        raise ResticError(f"restic: dump {path}: {exc}") from exc

    relay = None
    if progress is not None:
        relay = threading.Thread(target=_relay_text, args=(proc.stderr, progress), daemon=True)
        relay.start()
    try:
        shutil.copyfileobj(proc.stdout, out, _CHUNK)
    except OSError as exc:
        proc.kill()
        proc.wait()
        raise ResticError(f"restic: dump {path}: {exc}") from exc
    finally:
        proc.stdout.close()
    returncode = proc.wait()
    if relay is not None:
        relay.join()
    if returncode != 0:
        raise ResticError(f"restic: dump {path}: exit status {returncode}")


def forget_snapshots(
    binary: BinaryInfo, repo: str, snapshot_ids: Iterable[str], prune: bool
) -> None:
    """Remove snapshots by ID, pruning unreferenced data when ``prune`` is set."""
    ids = list(snapshot_ids)
    if not ids:
        return
    args = ["forget"]
    if prune:
        args.append("--prune")
    args += ids
    _run(binary, repo, args, "forget snapshots")


def list_snapshots(
    binary: BinaryInfo, repo: str, tags: Iterable[str] | None = None
) -> list[Snapshot]:
    """Return snapshots carrying all of ``tags``, oldest first."""
    wanted = list(tags or [])
    args = ["snapshots", "--json"]
    if wanted:
        args += ["--tag", ",".join(wanted)]
    stdout = _run(binary, repo, args, "list snapshots")
    try:
        raw = json.loads(stdout)
        snaps = [_snapshot_from_json(item) for item in raw or []]
    except (ValueError, TypeError, AttributeError) as exc:
        raise ResticError(f"restic: parse snapshots json: {exc}") from exc
    if wanted:
        snaps = [s for s in snaps if set(wanted) <= set(s.tags)]
    for snap in snaps:
        if not snap.id:
            snap.id = snap.short_id
    return sorted(snaps, key=lambda s: s.time)


def _snapshot_from_json(item: dict) -> Snapshot:
    return Snapshot(
        id=item.get("id") or "",
        short_id=item.get("short_id") or "",
        time=_parse_time(item.get("time") or ""),
        tags=list(item.get("tags") or []),
        paths=list(item.get("paths") or []),
    )


def _parse_time(value: str) -> datetime:
    if not value:
        return _ZERO_TIME
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _probe_snapshots(binary: BinaryInfo, repo: str, use_limit: bool) -> None:
    args = ["snapshots", "--json"]
    if use_limit:
        args += ["--limit", "1"]
    _run(binary, repo, args, "probe repository")


def _init_repository(binary: BinaryInfo, repo: str) -> None:
    _run(binary, repo, ["init"], "init repository")


def _is_unknown_limit_flag(message: str) -> bool:
    return "unknown flag: --limit" in message or "unknown option --limit" in message


def _is_not_repository(message: str) -> bool:
    lowered = message.lower()
    return (
        "is not a repository" in lowered
        or "does not look like a restic repository" in lowered
    )


def _repo_env(repo: str) -> dict[str, str]:
    env = dict(os.environ)
    env["RESTIC_REPOSITORY"] = repo
    return env


def _run(binary: BinaryInfo, repo: str, args: list[str], action: str) -> str:
    """Run restic, returning stdout; raise ResticError carrying stderr on failure."""
    try:
        result = subprocess.run(
            [binary.path, *args],
            env=_repo_env(repo),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise ResticError(f"restic: {action}: {exc}") from exc
    if result.returncode != 0:
        raise ResticError(
            f"restic: {action}: exit status {result.returncode}: {result.stderr}"
        )
    return result.stdout


def _relay_text(pipe: BinaryIO, out: TextIO) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = pipe.read1(_CHUNK) if hasattr(pipe, "read1") else pipe.read(_CHUNK)
        if not chunk:
            break
        out.write(decoder.decode(chunk))
    tail = decoder.decode(b"", final=True)
    if tail:
        out.write(tail)
    out.flush()