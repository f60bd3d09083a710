"""Result types that make pipeline continuation decisions explicit.

StageResult:
    Outcome of one pipeline stage. A stage either produced its real value
    (OK), fell back to a safe default so the run can continue (DEGRADED), or
    could not produce anything useful (FAILED). The value is always set so
    downstream stages never have to guess.

BackupOutcome:
    Outcome of a single report backup call.

InsightParse:
    Tagged result of extracting structured insights from free-form model
    text: either ParsedInsights or RawInsights. Callers branch on the type.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from models.insights import InsightBundle

T = TypeVar("T")


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class StageResult(Generic[T]):
    """Value produced by a stage together with how it was produced."""

    status: StageStatus
    value: T
    error: str = ""

    @classmethod
    def ok(cls, value: T) -> "StageResult[T]":
        return cls(StageStatus.OK, value)

    @classmethod
    def degraded(cls, value: T, error: str) -> "StageResult[T]":
        return cls(StageStatus.DEGRADED, value, error)

    @classmethod
    def failed(cls, value: T, error: str) -> "StageResult[T]":
        return cls(StageStatus.FAILED, value, error)

    @property
    def is_ok(self) -> bool:
        return self.status is StageStatus.OK

    @property
    def usable(self) -> bool:
        """True unless the stage failed outright."""
        return self.status is not StageStatus.FAILED


class BackupOutcome(str, Enum):
    """Result of one report backup call.

    ALREADY_PRESENT and UPLOADED count as success. FAILED means every
    attempt was used up. SOURCE_MISSING means the local report did not
    exist or could not be read, so nothing was attempted.
    """

    ALREADY_PRESENT = "already_present"
    UPLOADED = "uploaded"
    FAILED = "failed"
    SOURCE_MISSING = "source_missing"

    @property
    def succeeded(self) -> bool:
        return self in (BackupOutcome.ALREADY_PRESENT, BackupOutcome.UPLOADED)


@dataclass(frozen=True)
class ParsedInsights:
    """Model text contained a usable JSON object."""

    bundle: InsightBundle
    raw_text: str


@dataclass(frozen=True)
class RawInsights:
    """Model text could not be turned into an insight bundle.

    ``parse_error`` is set when a JSON object was present but unusable, as
    opposed to the model answering in prose only.
    """

    raw_text: str
    reason: str
    parse_error: bool = False


InsightParse = ParsedInsights | RawInsights
