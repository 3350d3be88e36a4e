"""Durable output store helpers."""

from pathlib import Path


def output_exists(output_path: str) -> bool:
    """Default existence check: the derivative is already on disk."""
    return Path(output_path).exists()
