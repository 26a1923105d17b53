"""
Reconciler - Converges one target resource to its baseline.

For every property check of a reconciler plugin: read the current state,
compare it with the desired document, and issue a single mutating call only
on divergence. Independent checks never short-circuit each other; only
authentication failures and failed prerequisites abort the run.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from baseline.base import (
    AuthError,
    CheckResult,
    DocumentError,
    LookupAbsent,
    Outcome,
    PrerequisiteError,
    PropertyApplyError,
    ProviderError,
    ReconciliationReport,
)
from baseline.clients.base import ResourceClient
from baseline.documents import encode
from baseline.reconcilers.base import PropertyCheck, ReconcilerPlugin

logger = logging.getLogger(__name__)


@dataclass
class ReconcilerConfig:
    """Configuration for a reconciliation run."""

    dry_run: bool = False  # detect divergence, never write


class Reconciler:
    """
    Runs a reconciler plugin's checks against one resource client.

    The client is bound to one credential for the lifetime of the run and
    is passed in explicitly.
    """

    def __init__(
        self, client: ResourceClient, config: Optional[ReconcilerConfig] = None
    ):
        self.client = client
        self.config = config or ReconcilerConfig()

    def run(self, plugin: ReconcilerPlugin, ref: Any) -> ReconciliationReport:
        """
        Reconcile one resource.

        Args:
            plugin: The reconciler plugin declaring the checks
            ref: The target resource reference

        Returns:
            The finalized ReconciliationReport. Fatal errors are recorded on
            report.fatal, never raised.
        """
        report = ReconciliationReport(
            reconciler=plugin.name, target=str(ref), dry_run=self.config.dry_run
        )
        start_time = time.monotonic()
        logger.info(f"Reconciling {ref} with {plugin.name}")

        try:
            report.identity = self._verify_credentials()

            if plugin.requires_existing_resource:
                self._require_resource(ref)

            for check in plugin.checks(ref):
                self._run_check(check, ref, report)

        except (AuthError, PrerequisiteError) as e:
            logger.error(f"Reconciliation of {ref} aborted: {e}")
            report.abort(e)

        if report.fatal is None:
            self._collect_snapshot(plugin, ref, report)
            report.next_steps = plugin.next_steps(ref, report)

        report.finalize()
        duration = time.monotonic() - start_time
        logger.info(
            f"Reconciled {ref} in {duration:.2f}s: "
            f"{report.applied_count} applied, {len(report.failures)} failed, "
            f"{len(report.warnings)} warnings"
        )
        return report

    def _verify_credentials(self) -> str:
        try:
            return self.client.verify_credentials()
        except ProviderError as e:
            raise AuthError(f"Could not verify credentials: {e}") from e

    def _require_resource(self, ref: Any) -> None:
        try:
            exists = self.client.resource_exists(ref)
        except ProviderError as e:
            raise PrerequisiteError(f"Could not look up {ref}: {e}") from e
        if not exists:
            raise PrerequisiteError(f"{ref} does not exist")

    def _run_check(
        self, check: PropertyCheck, ref: Any, report: ReconciliationReport
    ) -> None:
        """
        Run one check and record its result on the report.

        A failed prerequisite is recorded before the run is aborted.

        Raises:
            AuthError: If the provider rejects the credential.
            PrerequisiteError: If a prerequisite check failed.
        """
        logger.debug(f"Running check {check.name} on {ref}")
        result = self._evaluate(check, ref)
        report.add(result)

        if result.outcome is Outcome.FAILED:
            if check.prerequisite:
                raise PrerequisiteError(f"{check.name}: {result.reason}")
            logger.error(f"{check.name} failed on {ref}: {result.reason}")

    def _evaluate(self, check: PropertyCheck, ref: Any) -> CheckResult:
        """Read, compare and (on divergence) apply one check."""
        # Read
        try:
            current = check.read(self.client, ref)
        except LookupAbsent as e:
            logger.warning(f"{check.name}: {e.message}")
            return CheckResult(
                check.name,
                Outcome.LOOKUP_ABSENT,
                message=e.message,
                remediation=e.remediation,
            )
        except ProviderError as e:
            return CheckResult(
                check.name, Outcome.FAILED, message="Read failed", reason=str(e)
            )

        # Validate and compare
        try:
            payload = encode(check.desired(ref))
        except DocumentError as e:
            return CheckResult(
                check.name,
                Outcome.FAILED,
                message="Desired document is invalid",
                reason=str(e),
            )

        if current.exists and check.matches(current.value, payload):
            return CheckResult(
                check.name, Outcome.ALREADY_SATISFIED, message=check.description
            )

        if not check.can_apply:
            return CheckResult(
                check.name,
                Outcome.LOOKUP_ABSENT,
                message=f"{check.description}: not found",
                remediation=check.remediation(ref),
            )

        if self.config.dry_run:
            logger.info(f"Dry run: {check.name} would be updated on {ref}")
            return CheckResult(
                check.name,
                Outcome.PLANNED,
                message=f"Would apply: {check.description}",
            )

        # Apply
        try:
            check.apply(self.client, ref, payload, current)
        except ProviderError as e:
            error = PropertyApplyError(check.name, str(e))
            return CheckResult(
                check.name,
                Outcome.FAILED,
                message="Apply failed",
                reason=error.reason,
                remediation=check.remediation(ref),
            )

        logger.info(f"Applied {check.name} on {ref}")
        return CheckResult(check.name, Outcome.APPLIED, message=check.description)

    def _collect_snapshot(
        self, plugin: ReconcilerPlugin, ref: Any, report: ReconciliationReport
    ) -> None:
        try:
            report.snapshot = plugin.snapshot(self.client, ref)
        except (AuthError, ProviderError) as e:
            logger.warning(f"Could not read back {ref}: {e}")
