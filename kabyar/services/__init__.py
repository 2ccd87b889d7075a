"""Service layer: credits, profiles, tutor threads and generation plumbing."""

from .credits import credit_ledger
from .network_manager import network_manager
from .profiles import profile_store
from .thread_store import thread_store

__all__ = [
    "credit_ledger",
    "network_manager",
    "profile_store",
    "thread_store",
]
