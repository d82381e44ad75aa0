# incusbackup

Building blocks for backup tooling around an Incus server: a confirmation
prompt for destructive actions, a progress-reporting stream wrapper, and
helpers that drive the `restic` command-line tool to store and fetch data
in a restic repository.

## What is inside

- `incusbackup.version` — `VERSION`, the application version string.
- `incusbackup.safety` — `Options` (`dry_run`, `yes`, `force`) and
  `confirm`, which asks a yes/no question before a destructive action.
- `incusbackup.progress` — `ProgressReader`, a wrapper around a binary
  stream that reports how many bytes have been read.
- `incusbackup.restic.detect` — finds the `restic` binary, reads its
  version and checks it against the supported minimum,
  `REQUIRED_VERSION` (0.18.0).
- `incusbackup.restic.repo` — initialises repositories, streams backups
  into restic through standard input, dumps files back out of snapshots,
  lists snapshots by tag and forgets old ones.

## Asking before destructive changes

```python
import sys

from incusbackup.safety import Options, confirm

if confirm(Options(), sys.stdin, sys.stdout, "Delete old snapshots?"):
    ...
```

The question is written as `"<question> [y/N]: "` and one line is read
from the input. With `dry_run` set, `confirm` declines without asking;
with `yes` set it accepts without asking. Otherwise only `y` or `yes`, in
any case and with surrounding spaces ignored, counts as agreement.

## Reporting progress

```python
import sys

from incusbackup.progress import ProgressReader

with open("export.tar", "rb") as fh:
    reader = ProgressReader(fh, total=1_048_576, label="upload", out=sys.stderr)
    while reader.read(65536):
        pass
```

While data is read, a line such as `\r[upload] 12.5% (131072/1048576 bytes)`
is written at most every 0.2 seconds; when `total` is 0 only the byte count
is shown. At the end of the stream a final line and a newline are written.
`out` may be `None` to read silently. The running count is kept in
`bytes_read`.

## restic repositories

restic must be on `PATH`, and the repository password is taken from the
environment as restic itself expects (for example `RESTIC_PASSWORD`). Every
command is run with `RESTIC_REPOSITORY` set to the repository given.

```python
from incusbackup.restic.detect import detect, is_compatible
from incusbackup.restic.repo import ensure_repository, list_snapshots

binary = detect(5.0)
if not is_compatible(binary.version):
    raise SystemExit(f"restic {binary.version} is older than supported")

ensure_repository(binary, "/srv/backups/restic")
for snap in list_snapshots(binary, "/srv/backups/restic", ["type=instance"]):
    tags = snap.tag_map()
    print(tags.get("project"), tags.get("name"), tags.get("timestamp"))
```

- `detect(timeout)` returns a `BinaryInfo` with `path` and `version`; the
  version query is bounded by `timeout` seconds (five by default).
- `extract_version(output)` pulls a version such as `0.18.2` or
  `0.18.0-dev` out of `restic version` output, or returns `""`.
- `is_compatible(version)` compares major, minor and patch numbers; a
  pre-release ranks below the matching release.
- `ensure_repository(binary, repo)` probes the repository and runs
  `restic init` when restic reports that it is not a repository.
- `backup_stream(binary, repo, filename, tags, stream, progress)` and
  `backup_bytes(...)` store data under `filename` with the given tags;
  restic's output goes to `progress` when one is given.
- `dump(binary, repo, snapshot_id, path, out, progress)` writes a file from
  a snapshot to a binary stream.
- `list_snapshots(binary, repo, tags)` returns `Snapshot` records that carry
  all of the given tags, oldest first; `Snapshot.tag_map()` turns
  `key=value` tags into a dict.
- `forget_snapshots(binary, repo, snapshot_ids, prune)` forgets snapshots
  by ID, adding `--prune` when asked; an empty list does nothing.

Failures of the restic command are raised as `ResticError`, with restic's
own error output included in the message where there is any.

## What this package does not do

It does not talk to an Incus server: there is no API client here, and it
does not export, import or snapshot instances or volumes, nor back up
projects, profiles, networks or storage pools. There is no directory
storage layout and no command-line program; the pieces above are meant to
be used from your own code.

## Running the tests

Install the `test` extra and run pytest from the project directory.