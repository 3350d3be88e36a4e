# src/pixelqueue/contracts/jobs.py
"""Job value objects submitted to the scheduler."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pixelqueue.contracts.errors import MalformedJobError

# (input_path, output_path)
JobKey = tuple[str, str]


def normalize_identity(value: object, *, field_name: str) -> str:
    """Return a path-like identity as a plain string.

    Identities are opaque to the scheduler; they are only used as mapping
    keys. No escaping is applied because the registry never splits keys.

    Raises:
        MalformedJobError: If the value is not a str/PathLike or is empty.
    """
    if not isinstance(value, (str, os.PathLike)):
        raise MalformedJobError(f"{field_name} must be a str or os.PathLike, got {type(value).__name__}")
    identity = os.fspath(value)
    if not isinstance(identity, str):
        raise MalformedJobError(f"{field_name} must be a text path, got {type(identity).__name__}")
    if not identity:
        raise MalformedJobError(f"{field_name} must not be empty")
    return identity


@dataclass(frozen=True)
class ImageJob:
    """A request to derive one output artifact from one input artifact.

    Attributes:
        input_path: Identity of the source artifact
        output_path: Identity of the derivative to produce
        content_digest: Hash of the input content, passed through to the transform
        args: Transform parameters (width, format, quality, ...); opaque here
    """

    input_path: str
    output_path: str
    content_digest: str = ""
    args: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_path", normalize_identity(self.input_path, field_name="input_path"))
        object.__setattr__(self, "output_path", normalize_identity(self.output_path, field_name="output_path"))
        if not isinstance(self.content_digest, str):
            raise MalformedJobError(f"content_digest must be a str, got {type(self.content_digest).__name__}")
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))

    @property
    def key(self) -> JobKey:
        """Registry key for this job."""
        return (self.input_path, self.output_path)
