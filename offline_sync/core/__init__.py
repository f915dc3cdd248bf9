"""Core fetch, extraction, indexing and synchronization components."""
