"""
models/report.py
----------------
Per-item results collected into batch reports.

Batch operations (a scheduler run over all owners, a generation pass over
all templates) never stop at the first failure. Each item gets an
ItemResult and the caller inspects the BatchReport.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ItemResult:
    """
    Outcome of processing one item of a batch.

    Attributes:
        key: What was processed (owner id, template id, ...).
        status: 'ok', 'skipped' or 'failed'.
        detail: Count or note for ok/skipped items.
        error: Failure reason for failed items.
    """
    key: Any
    status: str
    detail: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, key, detail=None) -> "ItemResult":
        return cls(key=key, status="ok", detail=detail)

    @classmethod
    def skipped(cls, key, detail=None) -> "ItemResult":
        return cls(key=key, status="skipped", detail=detail)

    @classmethod
    def failed(cls, key, error: str) -> "ItemResult":
        return cls(key=key, status="failed", error=error)

    @property
    def succeeded(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict:
        return {"key": self.key, "status": self.status, "detail": self.detail, "error": self.error}


@dataclass
class BatchReport:
    """Ordered collection of ItemResults for one batch run."""
    name: str
    results: list[ItemResult] = field(default_factory=list)

    def add(self, result: ItemResult) -> None:
        self.results.append(result)

    @property
    def failures(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "ok"]

    @property
    def skipped(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == "skipped"]

    def summary(self) -> str:
        return (
            f"{self.name}: {len(self.succeeded)} ok, "
            f"{len(self.skipped)} skipped, {len(self.failures)} failed"
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "results": [r.to_dict() for r in self.results],
            "failed": len(self.failures),
        }
