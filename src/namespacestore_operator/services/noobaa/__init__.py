"""Storage system management API client."""

from .client import NooBaaClient
from .models import RPCError

__all__ = ["NooBaaClient", "RPCError"]
