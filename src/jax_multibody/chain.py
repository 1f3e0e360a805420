"""Whole-mechanism kinematic queries built on the state cache.

Every function reads cached quantities from a ``MechanismState``. After the
state's vectors change, only what a query touches gets recomputed.
"""

from typing import Dict, Optional

import jax
import jax.numpy as jnp

from .core import MechanismState, RigidBody
from .spatial import GeometricJacobian, Momentum, SpatialInertia

Array = jax.Array


def forward_kinematics(state: MechanismState) -> Dict[str, Array]:
    """Compute world poses for all bodies in the mechanism.

    Args:
        state: mechanism state holding the configuration

    Returns:
        Dictionary mapping body names to their 4x4 poses in the root frame
    """
    return {
        body.name: state.transform_to_root(body.frame).to_matrix()
        for body in state.mechanism.bodies()
    }


def geometric_jacobian(state: MechanismState, body: RigidBody,
                       base: Optional[RigidBody] = None) -> GeometricJacobian:
    """Jacobian mapping the full velocity vector to the twist of ``body`` w.r.t. ``base``.

    Columns belong to the joints on the tree path from ``base`` to ``body``;
    joints walked against their direction contribute with a negative sign. All
    other columns are zero.

    Args:
        state: mechanism state
        body: body whose twist the Jacobian produces
        base: reference body, the root body when omitted

    Returns:
        GeometricJacobian of shape (6, num_velocities), expressed in the root frame
    """
    mechanism = state.mechanism
    base = mechanism.root_body if base is None else base
    nv = mechanism.num_velocities
    angular = jnp.zeros((3, nv), dtype=state.dtype)
    linear = jnp.zeros((3, nv), dtype=state.dtype)

    for joint, direction in mechanism.path(base, body):
        columns = mechanism.velocity_range(joint)
        columns = slice(columns.start, columns.stop)
        subspace = state.motion_subspace(joint)
        angular = angular.at[:, columns].set(direction * subspace.angular)
        linear = linear.at[:, columns].set(direction * subspace.linear)

    return GeometricJacobian(body.frame, base.frame, mechanism.root_frame, angular, linear)


def center_of_mass(state: MechanismState) -> Array:
    """Center of mass of all non-root bodies, in root frame coordinates."""
    bodies = state.mechanism.non_root_bodies()
    if not bodies:
        raise ValueError("A mechanism without non-root bodies has no center of mass")
    total = SpatialInertia.zero(state.mechanism.root_frame, dtype=state.dtype)
    for body in bodies:
        total = total + state.spatial_inertia(body)
    return total.center_of_mass


def momentum(state: MechanismState) -> Momentum:
    """Total momentum of the mechanism, expressed in the root frame."""
    total = Momentum.zero(state.mechanism.root_frame, dtype=state.dtype)
    for body in state.mechanism.non_root_bodies():
        total = total + state.spatial_inertia(body).momentum(state.twist_wrt_world(body))
    return total


def kinetic_energy(state: MechanismState) -> Array:
    """Total kinetic energy of the mechanism."""
    return sum(
        (state.spatial_inertia(body).kinetic_energy(state.twist_wrt_world(body))
         for body in state.mechanism.non_root_bodies()),
        jnp.zeros((), dtype=state.dtype),
    )
