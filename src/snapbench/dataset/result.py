"""VerifyResult and its parts, plus the JSON shape they serialize to."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

VERIFY_SCHEMA_VERSION = 1


@dataclass(frozen=True, slots=True)
class VerifyError:
    """One finding: which file (or directory) and what is wrong with it."""
    file: str
    message: str


@dataclass(frozen=True, slots=True)
class DatasetStats:
    account_chunks: int = 0
    storage_chunks: int = 0
    total_accounts: int = 0          # only counted in strict mode
    total_storage_slots: int = 0     # only counted in strict mode


@dataclass(frozen=True, slots=True)
class VerifyResult:
    valid: bool
    strict: bool
    errors: tuple[VerifyError, ...] = ()
    stats: DatasetStats = field(default_factory=DatasetStats)
    schema_version: int = VERIFY_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "valid": self.valid,
            "strict": self.strict,
            "errors": [{"file": e.file, "message": e.message} for e in self.errors],
            "stats": {
                "account_chunks": self.stats.account_chunks,
                "storage_chunks": self.stats.storage_chunks,
                "total_accounts": self.stats.total_accounts,
                "total_storage_slots": self.stats.total_storage_slots,
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> VerifyResult:
        stats = obj["stats"]
        return cls(
            schema_version=obj["schema_version"],
            valid=obj["valid"],
            strict=obj["strict"],
            errors=tuple(
                VerifyError(file=e["file"], message=e["message"])
                for e in obj["errors"]
            ),
            stats=DatasetStats(
                account_chunks=stats["account_chunks"],
                storage_chunks=stats["storage_chunks"],
                total_accounts=stats["total_accounts"],
                total_storage_slots=stats["total_storage_slots"],
            ),
        )
