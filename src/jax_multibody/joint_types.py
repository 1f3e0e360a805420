"""Joint types: the per-joint kinematics primitives.

A joint connects a frame before the joint (fixed to the predecessor body) to
a frame after the joint (fixed to the successor body). Joint types are
immutable PyTrees; the frames are supplied by the caller, which lets one
joint type instance serve any number of joints.

Every operation is a pure function of the generalized positions ``q`` and, where
relevant, velocities ``v``; operations that would update a vector in place
return the new vector instead.
"""

import copy
from abc import ABC, abstractmethod
from typing import Tuple

import jax
import jax.numpy as jnp
from flax import struct

from .spatial import (
    CartesianFrame3D,
    GeometricJacobian,
    SpatialAcceleration,
    Transform3D,
    Twist,
    Wrench,
)
from .transforms import quaternion, se3, so3

Array = jax.Array


class JointType(ABC):
    """Kinematics contract every joint type implements."""

    @property
    @abstractmethod
    def num_positions(self) -> int:
        raise NotImplementedError(f"{type(self).__name__} must implement num_positions")

    @property
    @abstractmethod
    def num_velocities(self) -> int:
        raise NotImplementedError(f"{type(self).__name__} must implement num_velocities")

    @abstractmethod
    def joint_transform(self, frame_after: CartesianFrame3D, frame_before: CartesianFrame3D,
                        q: Array) -> Transform3D:
        """Transform from ``frame_after`` to ``frame_before``."""
        raise NotImplementedError(f"{type(self).__name__} must implement joint_transform")

    @abstractmethod
    def joint_twist(self, frame_after: CartesianFrame3D, frame_before: CartesianFrame3D,
                    q: Array, v: Array) -> Twist:
        """Twist of ``frame_after`` w.r.t. ``frame_before``, expressed in ``frame_after``."""
        raise NotImplementedError(f"{type(self).__name__} must implement joint_twist")

    @abstractmethod
    def motion_subspace(self, frame_after: CartesianFrame3D, frame_before: CartesianFrame3D,
                        q: Array) -> GeometricJacobian:
        """Basis of the joint twists, expressed in ``frame_after``."""
        raise NotImplementedError(f"{type(self).__name__} must implement motion_subspace")

    @abstractmethod
    def bias_acceleration(self, frame_after: CartesianFrame3D, frame_before: CartesianFrame3D,
                          q: Array, v: Array) -> SpatialAcceleration:
        raise NotImplementedError(f"{type(self).__name__} must implement bias_acceleration")

    @abstractmethod
    def configuration_derivative_to_velocity(self, q: Array, q_dot: Array) -> Array:
        raise NotImplementedError(f"{type(self).__name__} must implement configuration_derivative_to_velocity")

    @abstractmethod
    def velocity_to_configuration_derivative(self, q: Array, v: Array) -> Array:
        raise NotImplementedError(f"{type(self).__name__} must implement velocity_to_configuration_derivative")

    @abstractmethod
    def zero_configuration(self, dtype=jnp.float64) -> Array:
        raise NotImplementedError(f"{type(self).__name__} must implement zero_configuration")

    @abstractmethod
    def rand_configuration(self, key: Array, dtype=jnp.float64) -> Array:
        raise NotImplementedError(f"{type(self).__name__} must implement rand_configuration")

    @abstractmethod
    def joint_torque(self, q: Array, joint_wrench: Wrench) -> Array:
        """Project a wrench, expressed in the frame after the joint, onto the joint's DOFs."""
        raise NotImplementedError(f"{type(self).__name__} must implement joint_torque")

    def local_coordinates(self, q0: Array, q: Array, v: Array) -> Tuple[Array, Array]:
        """Local coordinates ``phi`` of ``q`` around ``q0`` and their time derivative."""
        return q - q0, v

    def global_coordinates(self, q0: Array, phi: Array) -> Array:
        """Inverse of ``local_coordinates``: the configuration at ``phi`` around ``q0``."""
        return q0 + phi

    def flip_direction(self) -> "JointType":
        """The same joint with the roles of its two sides swapped."""
        return copy.deepcopy(self)


@struct.dataclass
class QuaternionFloating(JointType):
    """Free joint: q = [qw, qx, qy, qz, x, y, z], v = [angular, linear] in the frame after."""

    @property
    def num_positions(self) -> int:
        return 7

    @property
    def num_velocities(self) -> int:
        return 6

    def __str__(self) -> str:
        return "Quaternion floating joint"

    def joint_transform(self, frame_after, frame_before, q):
        return Transform3D(frame_after, frame_before, so3.from_quaternion(q[:4]), q[4:7])

    def joint_twist(self, frame_after, frame_before, q, v):
        return Twist(frame_after, frame_before, frame_after, v[:3], v[3:6])

    def motion_subspace(self, frame_after, frame_before, q):
        eye = jnp.eye(3, dtype=q.dtype)
        zeros = jnp.zeros((3, 3), dtype=q.dtype)
        return GeometricJacobian(
            frame_after, frame_before, frame_after,
            jnp.concatenate([eye, zeros], axis=1),
            jnp.concatenate([zeros, eye], axis=1),
        )

    def bias_acceleration(self, frame_after, frame_before, q, v):
        return SpatialAcceleration.zero(frame_after, frame_before, frame_after, dtype=q.dtype)

    def configuration_derivative_to_velocity(self, q, q_dot):
        quat = q[:4]
        angular = quaternion.angular_velocity_in_body(quat, q_dot[:4])
        linear = so3.from_quaternion(quat).T @ q_dot[4:7]
        return jnp.concatenate([angular, linear])

    def velocity_to_configuration_derivative(self, q, v):
        quat = q[:4]
        quat_dot = quaternion.derivative(quat, v[:3])
        trans_dot = so3.from_quaternion(quat) @ v[3:6]
        return jnp.concatenate([quat_dot, trans_dot])

    def zero_configuration(self, dtype=jnp.float64):
        return jnp.concatenate([quaternion.identity(dtype), jnp.zeros(3, dtype=dtype)])

    def rand_configuration(self, key, dtype=jnp.float64):
        rot_key, trans_key = jax.random.split(key)
        return jnp.concatenate([
            quaternion.random(rot_key, dtype=dtype),
            jax.random.normal(trans_key, (3,), dtype=dtype),
        ])

    def joint_torque(self, q, joint_wrench):
        return jnp.concatenate([joint_wrench.angular, joint_wrench.linear])

    # Exponential coordinates centered at q0: the configuration space is not a
    # vector space, so plain subtraction breaks down for large rotations.
    def local_coordinates(self, q0, q, v):
        frame_before = CartesianFrame3D("before")
        frame0 = CartesianFrame3D("q0")
        frame_after = CartesianFrame3D("after")

        t0 = self.joint_transform(frame0, frame_before, q0)
        t = self.joint_transform(frame_after, frame_before, q)
        relative = t0.inverse() @ t
        # q0 is fixed, so the twist w.r.t. frame0 is the joint twist
        twist = self.joint_twist(frame_after, frame0, q, v)

        phi = se3.log(relative.to_matrix())
        phi_dot = se3.right_jacobian_inverse(phi) @ twist.to_vector()
        return phi, phi_dot

    def global_coordinates(self, q0, phi):
        frame0 = CartesianFrame3D("q0")
        t0 = self.joint_transform(frame0, CartesianFrame3D("before"), q0)
        t = t0 @ Transform3D.from_matrix(CartesianFrame3D("after"), frame0, se3.exp(phi))
        return jnp.concatenate([t.quaternion(), t.trans])


class OneDegreeOfFreedomFixedAxis(JointType):
    """Shared behavior of single-coordinate joints moving along or about a fixed axis."""

    @property
    def num_positions(self) -> int:
        return 1

    @property
    def num_velocities(self) -> int:
        return 1

    def zero_configuration(self, dtype=jnp.float64):
        return jnp.zeros(1, dtype=dtype)

    def rand_configuration(self, key, dtype=jnp.float64):
        return jax.random.normal(key, (1,), dtype=dtype)

    def bias_acceleration(self, frame_after, frame_before, q, v):
        return SpatialAcceleration.zero(frame_after, frame_before, frame_after, dtype=q.dtype)

    def configuration_derivative_to_velocity(self, q, q_dot):
        return jnp.asarray(q_dot)

    def velocity_to_configuration_derivative(self, q, v):
        return jnp.asarray(v)


def _random_axis(key: Array) -> Array:
    axis = jax.random.normal(key, (3,), dtype=jnp.float64)
    return axis / jnp.linalg.norm(axis)


@struct.dataclass
class Prismatic(OneDegreeOfFreedomFixedAxis):
    """Translation along the unit vector ``translation_axis``."""
    translation_axis: Array

    @classmethod
    def random(cls, key: Array) -> "Prismatic":
        return cls(_random_axis(key))

    def __str__(self) -> str:
        return f"Prismatic joint with axis {self.translation_axis}"

    def flip_direction(self) -> "Prismatic":
        return Prismatic(-self.translation_axis)

    def joint_transform(self, frame_after, frame_before, q):
        return Transform3D.from_translation(frame_after, frame_before, q[0] * self.translation_axis)

    def joint_twist(self, frame_after, frame_before, q, v):
        linear = self.translation_axis * v[0]
        return Twist(frame_after, frame_before, frame_after, jnp.zeros_like(linear), linear)

    def motion_subspace(self, frame_after, frame_before, q):
        linear = self.translation_axis[:, None].astype(q.dtype)
        return GeometricJacobian(frame_after, frame_before, frame_after, jnp.zeros_like(linear), linear)

    def joint_torque(self, q, joint_wrench):
        return jnp.dot(joint_wrench.linear, self.translation_axis)[None]


@struct.dataclass
class Revolute(OneDegreeOfFreedomFixedAxis):
    """Rotation about the unit vector ``rotation_axis``."""
    rotation_axis: Array

    @classmethod
    def random(cls, key: Array) -> "Revolute":
        return cls(_random_axis(key))

    def __str__(self) -> str:
        return f"Revolute joint with axis {self.rotation_axis}"

    def flip_direction(self) -> "Revolute":
        return Revolute(-self.rotation_axis)

    def joint_transform(self, frame_after, frame_before, q):
        return Transform3D.from_rotation(frame_after, frame_before, so3.angle_axis(q[0], self.rotation_axis))

    def joint_twist(self, frame_after, frame_before, q, v):
        angular = self.rotation_axis * v[0]
        return Twist(frame_after, frame_before, frame_after, angular, jnp.zeros_like(angular))

    def motion_subspace(self, frame_after, frame_before, q):
        angular = self.rotation_axis[:, None].astype(q.dtype)
        return GeometricJacobian(frame_after, frame_before, frame_after, angular, jnp.zeros_like(angular))

    def joint_torque(self, q, joint_wrench):
        return jnp.dot(joint_wrench.angular, self.rotation_axis)[None]


@struct.dataclass
class Fixed(JointType):
    """Rigid connection without degrees of freedom."""

    @property
    def num_positions(self) -> int:
        return 0

    @property
    def num_velocities(self) -> int:
        return 0

    def __str__(self) -> str:
        return "Fixed joint"

    def joint_transform(self, frame_after, frame_before, q):
        return Transform3D.identity(frame_after, frame_before, dtype=q.dtype)

    def joint_twist(self, frame_after, frame_before, q, v):
        return Twist.zero(frame_after, frame_before, frame_after, dtype=q.dtype)

    def motion_subspace(self, frame_after, frame_before, q):
        zeros = jnp.zeros((3, 0), dtype=q.dtype)
        return GeometricJacobian(frame_after, frame_before, frame_after, zeros, zeros)

    def bias_acceleration(self, frame_after, frame_before, q, v):
        return SpatialAcceleration.zero(frame_after, frame_before, frame_after, dtype=q.dtype)

    def configuration_derivative_to_velocity(self, q, q_dot):
        return jnp.zeros(0, dtype=q.dtype)

    def velocity_to_configuration_derivative(self, q, v):
        return jnp.zeros(0, dtype=q.dtype)

    def zero_configuration(self, dtype=jnp.float64):
        return jnp.zeros(0, dtype=dtype)

    def rand_configuration(self, key, dtype=jnp.float64):
        return jnp.zeros(0, dtype=dtype)

    def joint_torque(self, q, joint_wrench):
        return jnp.zeros(0, dtype=joint_wrench.linear.dtype)
