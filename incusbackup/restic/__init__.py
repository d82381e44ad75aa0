"""Helpers for locating and driving the restic command-line tool."""

__all__ = ["detect", "repo"]