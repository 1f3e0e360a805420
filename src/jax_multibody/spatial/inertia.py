"""Spatial (6x6) rigid body inertia."""

from __future__ import annotations

import jax
import jax.numpy as jnp
from flax import struct

from ..transforms import so3
from .force import Momentum
from .frames import CartesianFrame3D, check_frames
from .motion import Twist
from .transform3d import Transform3D

Array = jax.Array


@struct.dataclass
class SpatialInertia:
    """Inertia of a rigid body expressed in ``frame``.

    Attributes:
        frame: frame the inertia is expressed in. Static field.
        moment: (3, 3) moment of inertia about the origin of ``frame``.
        cross_part: (3,) mass times the center of mass position in ``frame``.
        mass: scalar mass.
    """
    frame: CartesianFrame3D = struct.field(pytree_node=False)
    moment: Array
    cross_part: Array
    mass: Array

    @classmethod
    def from_com(cls, frame: CartesianFrame3D, mass, com, moment_about_com) -> "SpatialInertia":
        """Build from mass, center of mass, and the moment of inertia about the center of mass."""
        mass = jnp.asarray(mass, dtype=jnp.float64)
        com = jnp.asarray(com, dtype=jnp.float64)
        c = so3.skew_symmetric(com)
        moment = jnp.asarray(moment_about_com, dtype=jnp.float64) - mass * (c @ c)
        return cls(frame, moment, mass * com, mass)

    @classmethod
    def zero(cls, frame: CartesianFrame3D, dtype=jnp.float64) -> "SpatialInertia":
        return cls(frame, jnp.zeros((3, 3), dtype=dtype), jnp.zeros(3, dtype=dtype), jnp.zeros((), dtype=dtype))

    @property
    def center_of_mass(self) -> Array:
        return self.cross_part / self.mass

    def __add__(self, other: "SpatialInertia") -> "SpatialInertia":
        check_frames(self.frame, other.frame)
        return SpatialInertia(
            self.frame,
            self.moment + other.moment,
            self.cross_part + other.cross_part,
            self.mass + other.mass,
        )

    def transform(self, t: Transform3D) -> "SpatialInertia":
        """Re-express in ``t.frame_to`` (rotation followed by the parallel axis shift)."""
        check_frames(self.frame, t.frame_from)
        J = t.rot @ self.moment @ t.rot.T
        mc = t.rot @ self.cross_part
        p = so3.skew_symmetric(t.trans)
        mc_skew = so3.skew_symmetric(mc)
        moment = J - (p @ mc_skew + mc_skew @ p) - self.mass * (p @ p)
        return SpatialInertia(t.frame_to, moment, mc + self.mass * t.trans, self.mass)

    def to_matrix(self) -> Array:
        """6x6 matrix acting on angular-first twists."""
        c = so3.skew_symmetric(self.cross_part)
        top = jnp.concatenate([self.moment, c], axis=1)
        bottom = jnp.concatenate([-c, self.mass * jnp.eye(3, dtype=self.moment.dtype)], axis=1)
        return jnp.concatenate([top, bottom], axis=0)

    def momentum(self, twist: Twist) -> Momentum:
        check_frames(self.frame, twist.frame)
        angular = self.moment @ twist.angular + jnp.cross(self.cross_part, twist.linear)
        linear = self.mass * twist.linear - jnp.cross(self.cross_part, twist.angular)
        return Momentum(self.frame, angular, linear)

    def kinetic_energy(self, twist: Twist) -> Array:
        h = self.momentum(twist)
        return 0.5 * (jnp.dot(twist.angular, h.angular) + jnp.dot(twist.linear, h.linear))
