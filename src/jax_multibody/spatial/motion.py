"""Spatial motion quantities: twists, spatial accelerations, geometric Jacobians.

All three carry the same labels: the motion of ``body`` relative to ``base``,
expressed in ``frame``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from flax import struct

from ..transforms import so3
from .frames import CartesianFrame3D, check_frames
from .transform3d import Transform3D

Array = jax.Array


@struct.dataclass
class Twist:
    """Spatial velocity of ``body`` with respect to ``base``, expressed in ``frame``."""
    body: CartesianFrame3D = struct.field(pytree_node=False)
    base: CartesianFrame3D = struct.field(pytree_node=False)
    frame: CartesianFrame3D = struct.field(pytree_node=False)
    angular: Array
    linear: Array

    @classmethod
    def zero(cls, body, base, frame, dtype=jnp.float64) -> "Twist":
        return cls(body, base, frame, jnp.zeros(3, dtype=dtype), jnp.zeros(3, dtype=dtype))

    def __add__(self, other: "Twist") -> "Twist":
        check_frames(self.frame, other.frame)
        if self.body is other.base:
            body, base = other.body, self.base
        elif other.body is self.base:
            body, base = self.body, other.base
        else:
            raise ValueError(
                f"Cannot add twist of {self.body} w.r.t. {self.base} "
                f"and twist of {other.body} w.r.t. {other.base}"
            )
        return Twist(body, base, self.frame, self.angular + other.angular, self.linear + other.linear)

    def __neg__(self) -> "Twist":
        return Twist(self.base, self.body, self.frame, -self.angular, -self.linear)

    def __sub__(self, other: "Twist") -> "Twist":
        return self + (-other)

    def transform(self, t: Transform3D) -> "Twist":
        """Re-express this twist in ``t.frame_to``."""
        check_frames(self.frame, t.frame_from)
        angular = t.rot @ self.angular
        linear = t.rot @ self.linear + jnp.cross(t.trans, angular)
        return Twist(self.body, self.base, t.frame_to, angular, linear)

    def to_vector(self) -> Array:
        return jnp.concatenate([self.angular, self.linear])


@struct.dataclass
class SpatialAcceleration:
    """Spatial acceleration of ``body`` with respect to ``base``, expressed in ``frame``."""
    body: CartesianFrame3D = struct.field(pytree_node=False)
    base: CartesianFrame3D = struct.field(pytree_node=False)
    frame: CartesianFrame3D = struct.field(pytree_node=False)
    angular: Array
    linear: Array

    @classmethod
    def zero(cls, body, base, frame, dtype=jnp.float64) -> "SpatialAcceleration":
        return cls(body, base, frame, jnp.zeros(3, dtype=dtype), jnp.zeros(3, dtype=dtype))

    def to_vector(self) -> Array:
        return jnp.concatenate([self.angular, self.linear])


@struct.dataclass
class GeometricJacobian:
    """Maps joint velocities to the twist of ``body`` w.r.t. ``base`` in ``frame``.

    Attributes:
        angular: (3, n) angular rows.
        linear: (3, n) linear rows.
    """
    body: CartesianFrame3D = struct.field(pytree_node=False)
    base: CartesianFrame3D = struct.field(pytree_node=False)
    frame: CartesianFrame3D = struct.field(pytree_node=False)
    angular: Array
    linear: Array

    @property
    def num_cols(self) -> int:
        return self.angular.shape[1]

    def transform(self, t: Transform3D) -> "GeometricJacobian":
        check_frames(self.frame, t.frame_from)
        angular = t.rot @ self.angular
        linear = t.rot @ self.linear + so3.skew_symmetric(t.trans) @ angular
        return GeometricJacobian(self.body, self.base, t.frame_to, angular, linear)

    def twist(self, v: Array) -> Twist:
        return Twist(self.body, self.base, self.frame, self.angular @ v, self.linear @ v)

    def to_matrix(self) -> Array:
        return jnp.concatenate([self.angular, self.linear], axis=0)
