"""Rigid transforms between labeled frames."""

from __future__ import annotations

import jax
import jax.numpy as jnp
from flax import struct

from ..transforms import se3, so3
from .frames import CartesianFrame3D, check_frames

Array = jax.Array


@struct.dataclass
class Transform3D:
    """Rigid transform mapping coordinates in ``frame_from`` to ``frame_to``.

    Attributes:
        frame_from: frame the transform maps from. Static field.
        frame_to: frame the transform maps to. Static field.
        rot: (3, 3) rotation matrix.
        trans: (3,) position of the origin of ``frame_from`` in ``frame_to``.
    """
    frame_from: CartesianFrame3D = struct.field(pytree_node=False)
    frame_to: CartesianFrame3D = struct.field(pytree_node=False)
    rot: Array
    trans: Array

    @classmethod
    def identity(cls, frame_from: CartesianFrame3D, frame_to: CartesianFrame3D = None,
                 dtype=jnp.float64) -> "Transform3D":
        frame_to = frame_from if frame_to is None else frame_to
        return cls(frame_from, frame_to, jnp.eye(3, dtype=dtype), jnp.zeros(3, dtype=dtype))

    @classmethod
    def from_translation(cls, frame_from: CartesianFrame3D, frame_to: CartesianFrame3D,
                         trans: Array) -> "Transform3D":
        trans = jnp.asarray(trans)
        return cls(frame_from, frame_to, jnp.eye(3, dtype=trans.dtype), trans)

    @classmethod
    def from_rotation(cls, frame_from: CartesianFrame3D, frame_to: CartesianFrame3D,
                      rot: Array) -> "Transform3D":
        rot = jnp.asarray(rot)
        return cls(frame_from, frame_to, rot, jnp.zeros(3, dtype=rot.dtype))

    @classmethod
    def from_matrix(cls, frame_from: CartesianFrame3D, frame_to: CartesianFrame3D,
                    matrix: Array) -> "Transform3D":
        matrix = jnp.asarray(matrix)
        if matrix.shape != (4, 4):
            raise ValueError(f"matrix must have shape (4, 4), got {matrix.shape}")
        return cls(frame_from, frame_to, matrix[:3, :3], matrix[:3, 3])

    def compose(self, other: "Transform3D") -> "Transform3D":
        """self ∘ other: apply ``other`` first, then ``self``."""
        check_frames(self.frame_from, other.frame_to)
        return Transform3D(
            other.frame_from,
            self.frame_to,
            self.rot @ other.rot,
            self.rot @ other.trans + self.trans,
        )

    def __matmul__(self, other: "Transform3D") -> "Transform3D":
        return self.compose(other)

    def inverse(self) -> "Transform3D":
        rot_inv = self.rot.T
        return Transform3D(self.frame_to, self.frame_from, rot_inv, -(rot_inv @ self.trans))

    def to_matrix(self) -> Array:
        return se3.from_position_and_rotation(self.trans, self.rot)

    def transform_point(self, point: Array) -> Array:
        """Map a point given in ``frame_from`` coordinates to ``frame_to``."""
        return self.rot @ point + self.trans

    def quaternion(self) -> Array:
        return so3.to_quaternion(self.rot)

    def __repr__(self) -> str:
        return f"Transform3D(from {self.frame_from} to {self.frame_to})"
