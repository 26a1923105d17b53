"""
Core reconciliation types and dataclasses.

This module contains the shared types used by the reconciler engine, the
resource clients and the reconciler plugins: resource references, property
states, per-check outcomes, the reconciliation report and the error taxonomy.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


# ==================== Errors ====================


class BaselineError(Exception):
    """Base class for all reconciliation errors."""


class InputError(BaselineError):
    """Raised when a required identifier is missing or invalid."""


class AuthError(BaselineError):
    """Raised when the provider rejects the credential. Aborts the run."""


class PrerequisiteError(BaselineError):
    """Raised when a resource later checks depend on is absent or unreadable."""


class ProviderError(BaselineError):
    """Raised by resource clients for any other provider failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DocumentError(BaselineError):
    """Raised when a desired-state document fails schema validation."""


class PropertyApplyError(BaselineError):
    """Raised when the mutating call for a single property fails."""

    def __init__(self, property_name: str, reason: str):
        super().__init__(f"{property_name}: {reason}")
        self.property_name = property_name
        self.reason = reason


class LookupAbsent(Exception):
    """
    Signals that a dependent record (e.g. a DNS zone) was not found.

    This is not an error: the check is reported as a warning together with
    manual remediation steps and the run carries on.
    """

    def __init__(self, message: str, remediation: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.remediation = list(remediation or [])


# ==================== Resource references ====================


@dataclass(frozen=True)
class RepositoryRef:
    """A repository and the branch governance is applied to."""

    owner: str
    name: str
    branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.full_name}@{self.branch}"


@dataclass(frozen=True)
class BucketRef:
    """A website bucket named ``<subdomain>.<domain>`` in one region."""

    subdomain: str
    domain: str
    region: str = "us-east-1"

    @property
    def bucket_name(self) -> str:
        return f"{self.subdomain}.{self.domain}"

    def __str__(self) -> str:
        return f"{self.bucket_name} ({self.region})"


# ==================== Outcomes ====================


class Outcome(Enum):
    """Result of reconciling a single property."""

    ALREADY_SATISFIED = "already_satisfied"
    APPLIED = "applied"
    FAILED = "failed"
    LOOKUP_ABSENT = "lookup_absent"
    PLANNED = "planned"


@dataclass
class PropertyState:
    """Current value of a property as read from the provider."""

    value: Any = None
    exists: bool = True

    @classmethod
    def absent(cls) -> "PropertyState":
        return cls(value=None, exists=False)


@dataclass
class CheckResult:
    """Outcome of one property check in one run."""

    name: str
    outcome: Outcome
    message: str = ""
    reason: Optional[str] = None
    remediation: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "message": self.message,
            "reason": self.reason,
            "remediation": list(self.remediation),
        }


# Exit codes reported by the CLI
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INPUT = 2
EXIT_AUTH = 3
EXIT_PREREQUISITE = 4
EXIT_PARTIAL = 5


@dataclass
class ReconciliationReport:
    """
    Ordered outcomes of one reconciliation run.

    Results are appended while the run progresses; once finalize() is called
    the report is frozen and handed to the reporter.
    """

    reconciler: str
    target: str
    results: List[CheckResult] = field(default_factory=list)
    identity: Optional[str] = None
    fatal: Optional[BaselineError] = None
    snapshot: Dict[str, Any] = field(default_factory=dict)
    next_steps: List[str] = field(default_factory=list)
    dry_run: bool = False
    _complete: bool = field(default=False, repr=False)

    def add(self, result: CheckResult) -> None:
        """Append a check result. Raises RuntimeError once finalized."""
        if self._complete:
            raise RuntimeError("Cannot add results to a finalized report")
        self.results.append(result)

    def abort(self, error: BaselineError) -> None:
        """Record the fatal error that terminated the run."""
        if self._complete:
            raise RuntimeError("Cannot abort a finalized report")
        self.fatal = error

    def finalize(self) -> None:
        self._complete = True

    @property
    def complete(self) -> bool:
        return self._complete

    def outcome_of(self, name: str) -> Optional[Outcome]:
        for result in self.results:
            if result.name == name:
                return result.outcome
        return None

    @property
    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if r.outcome is Outcome.FAILED]

    @property
    def warnings(self) -> List[CheckResult]:
        return [r for r in self.results if r.outcome is Outcome.LOOKUP_ABSENT]

    @property
    def applied_count(self) -> int:
        return sum(1 for r in self.results if r.outcome is Outcome.APPLIED)

    @property
    def succeeded(self) -> bool:
        """True when the run was not aborted and no check failed."""
        return self.fatal is None and not self.failures

    def exit_code(self, strict: bool = False) -> int:
        """
        Map the report to a process exit code.

        Advisory warnings (LOOKUP_ABSENT) do not fail the run unless
        strict is set.
        """
        if isinstance(self.fatal, AuthError):
            return EXIT_AUTH
        if isinstance(self.fatal, PrerequisiteError):
            return EXIT_PREREQUISITE
        if self.fatal is not None or self.failures:
            return EXIT_FAILED
        if strict and self.warnings:
            return EXIT_PARTIAL
        return EXIT_OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reconciler": self.reconciler,
            "target": self.target,
            "identity": self.identity,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
            "fatal": (
                {"type": type(self.fatal).__name__, "message": str(self.fatal)}
                if self.fatal is not None
                else None
            ),
            "snapshot": dict(self.snapshot),
            "next_steps": list(self.next_steps),
            "exit_code": self.exit_code(),
        }
