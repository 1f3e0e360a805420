"""Core mechanism data structures.

This module provides the mechanism topology (bodies and joints), the state
container for generalized coordinates, and the lazily evaluated kinematics
cache that connects them.
"""

from .mechanism import RigidBody, Joint, Mechanism
from .cache import (
    CacheElement,
    ImmutableCacheElement,
    MutableCacheElement,
    MechanismStateCache,
)
from .state import MechanismState

__all__ = [
    "RigidBody",
    "Joint",
    "Mechanism",
    "CacheElement",
    "ImmutableCacheElement",
    "MutableCacheElement",
    "MechanismStateCache",
    "MechanismState",
]
