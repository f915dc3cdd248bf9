"""Filesystem helpers for offline artifacts."""
