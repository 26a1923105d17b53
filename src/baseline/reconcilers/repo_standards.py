"""
Repository standards reconciler.

Governs a GitHub repository: auto-merge enabled, branch protection on the
target branch, and presence of the standard workflow files.
"""

import logging
from typing import Any, Dict, List, Optional

from baseline.base import PropertyState, ReconciliationReport, RepositoryRef
from baseline.clients.base import ResourceClient
from baseline.documents import BranchProtection
from baseline.reconcilers.base import LookupCheck, PropertyCheck, ReconcilerPlugin
from config import DEFAULT_WORKFLOW_PATHS

logger = logging.getLogger(__name__)

# Files a repository usually copies from the template repository
TEMPLATE_FILES = [
    ".github/workflows/dependabot-auto-merge.yml",
    ".github/workflows/test.yml (customize for your project)",
    ".github/dependabot.yml",
]


def _allowed(flag: Any) -> str:
    return "allowed" if flag else "blocked"


def _contains(current: Any, desired: Any) -> bool:
    """
    True when every non-null field of desired is present in current.

    Nested objects are compared the same way; keys only present in current
    are ignored. Lists compare without regard to order.
    """
    if isinstance(desired, dict):
        if not isinstance(current, dict):
            return False
        return all(
            _contains(current.get(key), value)
            for key, value in desired.items()
            if value is not None
        )
    if isinstance(desired, list):
        if not isinstance(current, list):
            return False
        return sorted(map(str, current)) == sorted(map(str, desired))
    return current == desired


class AutoMergeCheck(PropertyCheck):
    def __init__(self):
        super().__init__(
            "auto-merge", "allow_auto_merge", "Pull request auto-merge is enabled"
        )

    def desired(self, ref: RepositoryRef) -> bool:
        return True


class BranchProtectionCheck(PropertyCheck):
    """
    Branch protection ruleset on the target branch.

    Sub-rules left as None in the desired ruleset are unmanaged: whatever is
    configured for them counts as satisfied. Within a managed sub-rule only
    the keys the desired ruleset sets are compared. Divergence replaces the
    whole ruleset.
    """

    def __init__(self, protection: Optional[BranchProtection] = None):
        super().__init__(
            "branch-protection",
            "branch_protection",
            "Branch protection blocks force pushes and deletion",
        )
        self.protection = protection or BranchProtection()

    def desired(self, ref: RepositoryRef) -> BranchProtection:
        return self.protection

    def matches(self, current: Any, desired: Any) -> bool:
        return isinstance(current, dict) and _contains(current, desired)


class WorkflowFileCheck(LookupCheck):
    def __init__(self, path: str, template_repo: str):
        super().__init__(
            f"workflow:{path}", f"contents/{path}", f"Workflow file {path} exists"
        )
        self.path = path
        self.template_repo = template_repo

    def remediation(self, ref: RepositoryRef) -> List[str]:
        return [f"Copy from {self.template_repo}: {self.path}"]


class RepoStandardsReconciler(ReconcilerPlugin):
    """Baseline governance for one repository branch."""

    requires_existing_resource = True

    def __init__(
        self,
        protection: Optional[BranchProtection] = None,
        workflow_paths: Optional[List[str]] = None,
        template_repo: str = "hivemind",
    ):
        self.protection = protection or BranchProtection()
        self.workflow_paths = list(workflow_paths or DEFAULT_WORKFLOW_PATHS)
        self.template_repo = template_repo

    @property
    def name(self) -> str:
        return "repo-standards"

    @property
    def description(self) -> str:
        return "Auto-merge, branch protection and workflow files for a repository"

    @property
    def governed_properties(self) -> List[str]:
        return ["auto-merge", "branch-protection"] + [
            f"workflow:{path}" for path in self.workflow_paths
        ]

    def checks(self, ref: RepositoryRef) -> List[PropertyCheck]:
        checks: List[PropertyCheck] = [
            AutoMergeCheck(),
            BranchProtectionCheck(self.protection),
        ]
        for path in self.workflow_paths:
            checks.append(WorkflowFileCheck(path, self.template_repo))
        return checks

    def snapshot(self, client: ResourceClient, ref: RepositoryRef) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {}

        repo = client.read_property(ref, "repository")
        if repo.exists:
            data = repo.value
            snapshot["Repository"] = data.get("name", ref.name)
            snapshot["URL"] = data.get("html_url") or data.get("url", "")
            snapshot["Auto-merge"] = bool(data.get("allow_auto_merge"))

        protection: PropertyState = client.read_property(ref, "branch_protection")
        if not protection.exists:
            snapshot["Branch"] = f"{ref.branch} (unprotected)"
            return snapshot

        rules = protection.value
        status_checks = rules.get("required_status_checks") or {}
        snapshot["Branch"] = f"{ref.branch} (protected)"
        contexts = status_checks.get("contexts", [])
        snapshot["Status checks"] = f"{len(contexts)} required"
        snapshot["Force pushes"] = _allowed(rules.get("allow_force_pushes"))
        snapshot["Delete branch"] = _allowed(rules.get("allow_deletions"))
        return snapshot

    def next_steps(
        self, ref: RepositoryRef, report: ReconciliationReport
    ) -> List[str]:
        steps = [f"Copy workflow files from {self.template_repo} if needed:"]
        steps.extend(f"  - {path}" for path in TEMPLATE_FILES)
        steps.append("Update branch protection with required status checks:")
        steps.append(
            f"  baselinectl repo {ref.name} {ref.branch} "
            "--protection-file protection.json"
        )
        return steps
