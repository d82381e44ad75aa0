"""Safety toggles and confirmation prompts for destructive actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TextIO


@dataclass
class Options:
    """Global safety-related toggles from command-line flags."""

    dry_run: bool = False
    yes: bool = False
    force: bool = False


def confirm(opts: Options, stdin: TextIO, out: TextIO | None, question: str) -> bool:
    """Ask the user to confirm an action.

    Dry-run mode always declines without asking; ``yes`` always accepts.
    """
    if opts.dry_run:
        return False
    if opts.yes:
        return True
    if out is not None:
        out.write(f"{question.strip()} [y/N]: ")
        out.flush()
    answer = stdin.readline().strip().lower()
    return answer in ("y", "yes")