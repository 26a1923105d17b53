"""
Reconciler Plugin Base - Abstract interface for reconciler plugins.

A reconciler plugin declares, for one kind of resource, the fixed ordered
list of property checks that bring it to its baseline. The Reconciler
engine (reconciler.py) runs those checks against a resource client.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from baseline.base import PropertyState, ReconciliationReport
from baseline.clients.base import ResourceClient


class PropertyCheck(ABC):
    """
    One governed property of a resource.

    The engine calls read(), then compares the current value against the
    encoded desired() document with matches(), and only calls apply() on
    divergence.
    """

    # A failing prerequisite aborts the whole run
    prerequisite: bool = False
    # Lookup-only checks never mutate; absence is reported as a warning
    can_apply: bool = True

    def __init__(self, name: str, property_name: str, description: str = ""):
        self.name = name
        self.property_name = property_name
        self.description = description

    def read(self, client: ResourceClient, ref: Any) -> PropertyState:
        """Read the current state. May raise LookupAbsent."""
        return client.read_property(ref, self.property_name)

    @abstractmethod
    def desired(self, ref: Any) -> Any:
        """Return the desired document (or plain value) for this property."""
        pass

    def matches(self, current: Any, desired: Any) -> bool:
        """Structural equality between current value and desired payload."""
        return current == desired

    def apply(
        self, client: ResourceClient, ref: Any, payload: Any, current: PropertyState
    ) -> None:
        """Issue the single mutating call replacing the property with payload."""
        client.write_property(ref, self.property_name, payload)

    def remediation(self, ref: Any) -> List[str]:
        """Manual steps shown when the property cannot be converged."""
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class LookupCheck(PropertyCheck):
    """
    A check that only verifies existence.

    Nothing is ever written; a missing value is reported with the check's
    remediation steps.
    """

    can_apply = False

    def desired(self, ref: Any) -> Any:
        return None

    def matches(self, current: Any, desired: Any) -> bool:
        return True

    def apply(self, client, ref, payload, current) -> None:
        raise NotImplementedError(f"{self.name} is a lookup-only check")


class ReconcilerPlugin(ABC):
    """
    Abstract base class for reconciler plugins.

    Each plugin owns one resource kind and the order of its checks. Order
    is for display only, except where a provider enforces creation order;
    such checks are marked as prerequisites.
    """

    # Abort before any check if the base resource does not exist
    requires_existing_resource: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this reconciler."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """One-line description for listings."""
        pass

    @property
    @abstractmethod
    def governed_properties(self) -> List[str]:
        """Names of the properties this reconciler governs, in order."""
        pass

    @abstractmethod
    def checks(self, ref: Any) -> List[PropertyCheck]:
        """
        Build the ordered property checks for one resource.

        Args:
            ref: The resource reference

        Returns:
            The checks to run, in order.
        """
        pass

    def snapshot(self, client: ResourceClient, ref: Any) -> Dict[str, Any]:
        """
        Read back the resource state after reconciliation for display.

        Must not mutate anything.
        """
        return {}

    def next_steps(self, ref: Any, report: ReconciliationReport) -> List[str]:
        """Follow-up instructions shown after a completed run."""
        return []
