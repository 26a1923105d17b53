"""
Baseline reconciliation for repositories and redirect services.

This package provides the reconciliation types, the resource clients that
talk to providers, and the reconciler plugins that declare which properties
of a resource are governed.
"""

from baseline.base import (
    AuthError,
    BaselineError,
    BucketRef,
    CheckResult,
    InputError,
    Outcome,
    PrerequisiteError,
    PropertyState,
    ProviderError,
    ReconciliationReport,
    RepositoryRef,
)

__all__ = [
    "AuthError",
    "BaselineError",
    "BucketRef",
    "CheckResult",
    "InputError",
    "Outcome",
    "PrerequisiteError",
    "PropertyState",
    "ProviderError",
    "ReconciliationReport",
    "RepositoryRef",
]
