"""Application version string."""

VERSION = "0.0.0-dev"