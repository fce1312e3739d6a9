"""Base class for frozen snapshots that can be encoded and fingerprinted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .serialize import digest, to_serializable


@dataclass(frozen=True)
class State:
    """Immutable snapshot; subclasses override `to_dict` to choose their wire shape."""

    def to_dict(self) -> dict[str, Any]:
        return to_serializable(self.__dict__)

    def state_digest(self) -> str:
        """Fingerprint of `to_dict()`, equal for equal snapshots."""
        return digest(self.to_dict())
