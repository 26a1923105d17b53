"""
Reconciler plugins package.

Reconciler plugins declare the ordered property checks for one resource
kind. Built-in reconcilers are registered by register_builtin_plugins().
"""

from baseline.reconcilers.base import LookupCheck, PropertyCheck, ReconcilerPlugin

__all__ = ["LookupCheck", "PropertyCheck", "ReconcilerPlugin"]
