"""Force-like spatial vectors: wrenches and momenta."""

from __future__ import annotations

import jax
import jax.numpy as jnp
from flax import struct

from .frames import CartesianFrame3D, check_frames
from .transform3d import Transform3D

Array = jax.Array


class _ForceVector:
    """Shared algebra for (frame, angular, linear) force-like vectors."""

    @classmethod
    def zero(cls, frame, dtype=jnp.float64):
        return cls(frame, jnp.zeros(3, dtype=dtype), jnp.zeros(3, dtype=dtype))

    def __add__(self, other):
        check_frames(self.frame, other.frame)
        return type(self)(self.frame, self.angular + other.angular, self.linear + other.linear)

    def __neg__(self):
        return type(self)(self.frame, -self.angular, -self.linear)

    def __sub__(self, other):
        return self + (-other)

    def transform(self, t: Transform3D):
        """Re-express in ``t.frame_to``; the moment is taken about the new origin."""
        check_frames(self.frame, t.frame_from)
        linear = t.rot @ self.linear
        angular = t.rot @ self.angular + jnp.cross(t.trans, linear)
        return type(self)(t.frame_to, angular, linear)

    def to_vector(self) -> Array:
        return jnp.concatenate([self.angular, self.linear])


@struct.dataclass
class Wrench(_ForceVector):
    """Torque (angular) and force (linear) expressed in ``frame``."""
    frame: CartesianFrame3D = struct.field(pytree_node=False)
    angular: Array
    linear: Array


@struct.dataclass
class Momentum(_ForceVector):
    """Angular and linear momentum expressed in ``frame``."""
    frame: CartesianFrame3D = struct.field(pytree_node=False)
    angular: Array
    linear: Array
