from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

INVALID_FILE_SIZE = "error: invalid file size"
INVALID_PART_LAYOUT = "error: invalid part layout"

ARTIFACT_KEYS = (
    "matches",
    "missing_locally",
    "missing_on_s3",
    "mismatches",
    "missing_checksum",
    "unreadable",
)


@dataclass(frozen=True)
class RemoteObject:
    key: str
    size: int


@dataclass
class ChecksumRecord:
    key: str
    checksum: Optional[str] = None
    part_sizes: Optional[List[int]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"key": self.key, "checksum": self.checksum}
        if self.part_sizes is not None:
            data["part_sizes"] = list(self.part_sizes)
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChecksumRecord":
        key = data.get("key")
        if not isinstance(key, str) or not key:
            raise ValueError("checksum record without key")
        part_sizes = data.get("part_sizes")
        return cls(
            key=key,
            checksum=data.get("checksum") or None,
            part_sizes=[int(size) for size in part_sizes]
            if part_sizes is not None
            else None,
            error=data.get("error") or None,
        )


@dataclass
class MismatchDetail:
    key: str
    remote_checksum: str
    local_checksum: str


@dataclass
class ReconciliationResult:
    matches: Set[str] = field(default_factory=set)
    mismatches: Set[str] = field(default_factory=set)
    missing_checksum: Set[str] = field(default_factory=set)
    missing_locally: Set[str] = field(default_factory=set)
    missing_on_s3: Set[str] = field(default_factory=set)
    unreadable: Set[str] = field(default_factory=set)
    mismatch_details: Dict[str, MismatchDetail] = field(default_factory=dict)
    read_errors: Dict[str, str] = field(default_factory=dict)
    checksum_errors: Dict[str, str] = field(default_factory=dict)
    remote_count: int = 0
    local_count: int = 0
    compared_count: int = 0

    def has_differences(self) -> bool:
        return bool(
            self.mismatches
            or self.missing_checksum
            or self.missing_locally
            or self.missing_on_s3
            or self.unreadable
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: sorted(getattr(self, name)) for name in ARTIFACT_KEYS}
