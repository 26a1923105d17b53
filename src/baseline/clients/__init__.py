"""
Resource clients package.

Resource clients wrap a provider's control-plane API (GitHub, AWS) behind
the read/write property interface the reconciler uses.
"""

from baseline.clients.base import ResourceClient

__all__ = ["ResourceClient"]
