"""Generalized coordinates of a mechanism together with its kinematics cache."""

from typing import Dict, List, Optional

import jax
import jax.numpy as jnp

from ..spatial import CartesianFrame3D
from .cache import MechanismStateCache
from .mechanism import Joint, Mechanism, RigidBody

Array = jax.Array


def _concatenate(parts: List[Array], dtype) -> Array:
    return jnp.concatenate(parts) if parts else jnp.zeros(0, dtype=dtype)


class MechanismState:
    """Configuration ``q`` and velocity ``v`` of a mechanism.

    Joints own contiguous slices of ``q`` and ``v`` in tree order. Every
    setter marks the owned ``MechanismStateCache`` dirty, so cached
    kinematics always reflect the current vectors when read.

    Args:
        mechanism: the mechanism; its topology must not change afterwards.
        q: initial configuration, zero configuration when omitted.
        v: initial velocity, zero when omitted.
    """

    def __init__(self, mechanism: Mechanism, q: Optional[Array] = None, v: Optional[Array] = None,
                 dtype=jnp.float64):
        self.mechanism = mechanism
        self.dtype = dtype
        self.cache = MechanismStateCache(mechanism)
        self._q_slices: Dict[Joint, slice] = {}
        self._v_slices: Dict[Joint, slice] = {}
        for joint in mechanism.joints():
            q_range = mechanism.position_range(joint)
            v_range = mechanism.velocity_range(joint)
            self._q_slices[joint] = slice(q_range.start, q_range.stop)
            self._v_slices[joint] = slice(v_range.start, v_range.stop)

        self._q = self._zero_configuration_vector()
        self._v = jnp.zeros(mechanism.num_velocities, dtype=dtype)
        if q is not None:
            self.set_configuration_vector(q)
        if v is not None:
            self.set_velocity_vector(v)

    def __repr__(self) -> str:
        return f"MechanismState({self.mechanism!r})"

    @property
    def q(self) -> Array:
        return self._q

    @property
    def v(self) -> Array:
        return self._v

    @property
    def num_positions(self) -> int:
        return self._q.shape[0]

    @property
    def num_velocities(self) -> int:
        return self._v.shape[0]

    def configuration(self, joint: Joint) -> Array:
        return self._q[self._q_slices[joint]]

    def velocity(self, joint: Joint) -> Array:
        return self._v[self._v_slices[joint]]

    def setdirty(self) -> None:
        self.cache.setdirty()

    def set_configuration(self, joint: Joint, q_joint: Array) -> None:
        q_joint = jnp.asarray(q_joint, dtype=self.dtype)
        if q_joint.shape != (joint.num_positions,):
            raise ValueError(f"{joint!r} expects {joint.num_positions} positions, got shape {q_joint.shape}")
        self._q = self._q.at[self._q_slices[joint]].set(q_joint)
        self.setdirty()

    def set_velocity(self, joint: Joint, v_joint: Array) -> None:
        v_joint = jnp.asarray(v_joint, dtype=self.dtype)
        if v_joint.shape != (joint.num_velocities,):
            raise ValueError(f"{joint!r} expects {joint.num_velocities} velocities, got shape {v_joint.shape}")
        self._v = self._v.at[self._v_slices[joint]].set(v_joint)
        self.setdirty()

    def set_configuration_vector(self, q: Array) -> None:
        q = jnp.asarray(q, dtype=self.dtype)
        if q.shape != (self.mechanism.num_positions,):
            raise ValueError(f"Expected a configuration of shape ({self.mechanism.num_positions},), got {q.shape}")
        self._q = q
        self.setdirty()

    def set_velocity_vector(self, v: Array) -> None:
        v = jnp.asarray(v, dtype=self.dtype)
        if v.shape != (self.mechanism.num_velocities,):
            raise ValueError(f"Expected a velocity of shape ({self.mechanism.num_velocities},), got {v.shape}")
        self._v = v
        self.setdirty()

    def _zero_configuration_vector(self) -> Array:
        parts = [joint.joint_type.zero_configuration(self.dtype) for joint in self.mechanism.joints()]
        return _concatenate(parts, self.dtype)

    def zero_configuration(self) -> None:
        self._q = self._zero_configuration_vector()
        self.setdirty()

    def zero_velocity(self) -> None:
        self._v = jnp.zeros(self.mechanism.num_velocities, dtype=self.dtype)
        self.setdirty()

    def zero(self) -> None:
        self.zero_configuration()
        self.zero_velocity()

    def rand_configuration(self, key: Array) -> None:
        joints = self.mechanism.joints()
        keys = jax.random.split(key, max(len(joints), 1))
        parts = [joint.joint_type.rand_configuration(k, self.dtype) for joint, k in zip(joints, keys)]
        self._q = _concatenate(parts, self.dtype)
        self.setdirty()

    def rand_velocity(self, key: Array) -> None:
        self._v = jax.random.normal(key, (self.mechanism.num_velocities,), dtype=self.dtype)
        self.setdirty()

    def configuration_derivative(self) -> Array:
        """Time derivative of ``q`` implied by the current ``v``."""
        parts = [
            joint.joint_type.velocity_to_configuration_derivative(self.configuration(joint), self.velocity(joint))
            for joint in self.mechanism.joints()
        ]
        return _concatenate(parts, self.dtype)

    # Cache accessors

    def transform_to_parent(self, frame: CartesianFrame3D):
        return self.cache.transform_to_parent(self, frame)

    def transform_to_root(self, frame: CartesianFrame3D):
        return self.cache.transform_to_root(self, frame)

    def relative_transform(self, from_frame: CartesianFrame3D, to_frame: CartesianFrame3D):
        return self.cache.relative_transform(self, from_frame, to_frame)

    def twist_wrt_world(self, body: RigidBody):
        return self.cache.twist_wrt_world(self, body)

    def relative_twist(self, body: RigidBody, base: RigidBody):
        return self.cache.relative_twist(self, body, base)

    def motion_subspace(self, joint: Joint):
        return self.cache.motion_subspace(self, joint)

    def spatial_inertia(self, body: RigidBody):
        return self.cache.spatial_inertia(self, body)

    def crb_inertia(self, body: RigidBody):
        return self.cache.crb_inertia(self, body)
