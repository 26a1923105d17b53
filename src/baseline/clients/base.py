"""
Resource Client Base - Abstract interface over a provider's control plane.

A resource client is constructed once per run, bound to one set of
credentials, and passed explicitly to the reconciler. The reconciler only
sees this interface and never the provider behind it.
"""

from abc import ABC, abstractmethod
from typing import Any

from baseline.base import PropertyState


class ResourceClient(ABC):
    """
    Abstract base class for resource clients.

    Implementations translate property names into provider API calls and
    translate provider failures into the baseline error taxonomy:
    AuthError for rejected credentials, ProviderError for everything else.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this client (e.g., 'github')."""
        pass

    @abstractmethod
    def verify_credentials(self) -> str:
        """
        Check that the configured credential is accepted.

        Returns:
            A human-readable identity (login, ARN, ...).

        Raises:
            AuthError: If the credential is missing or rejected.
        """
        pass

    @abstractmethod
    def resource_exists(self, ref: Any) -> bool:
        """
        Check whether the base resource exists.

        Args:
            ref: The resource reference

        Returns:
            True if the resource exists, False if it does not.
        """
        pass

    @abstractmethod
    def read_property(self, ref: Any, name: str) -> PropertyState:
        """
        Read the current value of a property.

        A property that is simply not configured yet is returned as
        PropertyState(exists=False); that is not an error.

        Args:
            ref: The resource reference
            name: Property name understood by this client

        Returns:
            The current PropertyState.
        """
        pass

    @abstractmethod
    def write_property(self, ref: Any, name: str, value: Any) -> None:
        """
        Replace a property with the given value in a single mutating call.

        Args:
            ref: The resource reference
            name: Property name understood by this client
            value: The full desired payload

        Raises:
            ProviderError: If the provider rejects the change.
        """
        pass
