"""Filesystem layer: ignore chains, scanning, reading and staleness."""
