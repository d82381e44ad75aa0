"""Confirmation prompts, progress reporting and restic helpers for Incus backups."""

__version__ = "0.0.0.dev0"