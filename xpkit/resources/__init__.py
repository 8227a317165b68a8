"""Resource accessors for XPKit services."""

from .auth import Auth
from .base import BaseResource
from .identifications import Identifications
from .queues import Queues

__all__ = ["Auth", "BaseResource", "Identifications", "Queues"]
