"""Tests for the lazily recomputed mechanism state cache."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from jax_multibody.core import ImmutableCacheElement, MechanismState, MutableCacheElement
from jax_multibody.spatial import CartesianFrame3D
from jax_multibody.transforms import se3, so3


def _random_state(robot, seed=0):
    key_q, key_v = jax.random.split(jax.random.PRNGKey(seed))
    state = MechanismState(robot.mechanism)
    state.rand_configuration(key_q)
    state.rand_velocity(key_v)
    return state


def test_mutable_element_memoizes():
    """The update function runs once per dirty generation, dependencies first."""
    calls = []

    def update_base(state):
        calls.append("base")
        return 2.0

    def update_derived(state, base):
        calls.append("derived")
        return base + state

    base = MutableCacheElement(update_base)
    derived = MutableCacheElement(update_derived, [base])
    assert derived.dependencies == (base,)
    assert derived.dirty

    assert derived.get(1.0) == 3.0
    assert derived.get(1.0) == 3.0
    assert calls == ["base", "derived"]
    assert not derived.dirty

    # only the derived element is stale: the base value is reused
    derived.setdirty()
    assert derived.get(5.0) == 7.0
    assert calls == ["base", "derived", "derived"]

    base.setdirty()
    derived.setdirty()
    assert derived.get(5.0) == 7.0
    assert calls == ["base", "derived", "derived", "base", "derived"]


def test_immutable_element():
    element = ImmutableCacheElement("value")
    element.setdirty()
    assert element.get(None) == "value"


def test_cache_reuses_values_until_dirty(robot):
    state = _random_state(robot)
    frame = robot.forearm.frame

    first = state.transform_to_root(frame)
    assert state.transform_to_root(frame) is first
    assert state.twist_wrt_world(robot.forearm) is state.twist_wrt_world(robot.forearm)

    state.set_configuration(robot.elbow, jnp.array([0.3]))
    second = state.transform_to_root(frame)
    assert second is not first
    assert state.cache.num_mutable_elements > 0


def test_transform_to_root_matches_composition(robot):
    """forearm -> world = Rz(q1) * T(0, 0, 1) * Ry(q2) * T(0, 0, 0.1)."""
    state = MechanismState(robot.mechanism)
    q1, q2 = 0.4, -0.9
    state.set_configuration(robot.shoulder, jnp.array([q1]))
    state.set_configuration(robot.elbow, jnp.array([q2]))

    def rotation(angle, axis):
        return se3.from_position_and_rotation(jnp.zeros(3), so3.angle_axis(angle, jnp.array(axis)))

    def translation(z):
        return se3.from_position_and_rotation(jnp.array([0.0, 0.0, z]), jnp.eye(3))

    expected = rotation(q1, [0.0, 0.0, 1.0]) @ translation(1.0) @ rotation(q2, [0.0, 1.0, 0.0]) @ translation(0.1)
    t = state.transform_to_root(robot.forearm.frame)
    assert t.frame_from is robot.forearm.frame
    assert t.frame_to is robot.world.frame
    np.testing.assert_allclose(t.to_matrix(), expected, atol=1e-12)


def test_transform_to_parent(robot):
    state = MechanismState(robot.mechanism)
    state.set_configuration(robot.elbow, jnp.array([0.5]))

    joint_transform = state.transform_to_parent(robot.elbow.frame_after)
    assert joint_transform.frame_to is robot.elbow.frame_before
    np.testing.assert_allclose(joint_transform.rot, so3.angle_axis(0.5, jnp.array([0.0, 1.0, 0.0])), atol=1e-12)

    fixed = state.transform_to_parent(robot.forearm.frame)
    assert fixed.frame_to is robot.elbow.frame_after
    np.testing.assert_allclose(fixed.trans, jnp.array([0.0, 0.0, 0.1]))

    with pytest.raises(KeyError):
        state.transform_to_parent(CartesianFrame3D("unknown"))


def test_relative_transform(robot):
    state = _random_state(robot, 1)
    forearm, slider = robot.forearm.frame, robot.slider.frame

    t = state.relative_transform(forearm, slider)
    assert t.frame_from is forearm
    assert t.frame_to is slider
    expected = state.transform_to_root(slider).inverse() @ state.transform_to_root(forearm)
    np.testing.assert_allclose(t.to_matrix(), expected.to_matrix(), atol=1e-12)
    np.testing.assert_allclose(
        (state.relative_transform(slider, forearm) @ t).to_matrix(), jnp.eye(4), atol=1e-12
    )


def test_relative_twist(robot):
    state = _random_state(robot, 2)
    twist = state.relative_twist(robot.forearm, robot.slider)
    assert twist.body is robot.forearm.frame
    assert twist.base is robot.slider.frame
    assert twist.frame is robot.world.frame

    reverse = state.relative_twist(robot.slider, robot.forearm)
    np.testing.assert_allclose(twist.to_vector(), -reverse.to_vector(), atol=1e-12)

    world = state.relative_twist(robot.forearm, robot.world)
    np.testing.assert_allclose(world.to_vector(), state.twist_wrt_world(robot.forearm).to_vector(), atol=1e-12)
    np.testing.assert_allclose(state.twist_wrt_world(robot.world).to_vector(), jnp.zeros(6))


def test_twist_of_child_of_root(robot):
    """A body attached to the root by a revolute joint spins about the joint axis."""
    state = MechanismState(robot.mechanism)
    state.set_velocity(robot.shoulder, jnp.array([2.0]))
    twist = state.twist_wrt_world(robot.upper_arm)
    np.testing.assert_allclose(twist.angular, jnp.array([0.0, 0.0, 2.0]))
    np.testing.assert_allclose(twist.linear, jnp.zeros(3))


def test_motion_subspace_in_root_frame(robot):
    state = MechanismState(robot.mechanism)
    state.set_configuration(robot.shoulder, jnp.array([jnp.pi / 2]))
    subspace = state.motion_subspace(robot.elbow)
    assert subspace.frame is robot.world.frame
    # elbow axis y rotated a quarter turn about z, one meter above the origin
    np.testing.assert_allclose(subspace.angular[:, 0], jnp.array([-1.0, 0.0, 0.0]), atol=1e-12)
    np.testing.assert_allclose(subspace.linear[:, 0], jnp.cross(jnp.array([0.0, 0.0, 1.0]), jnp.array([-1.0, 0.0, 0.0])), atol=1e-12)


def test_spatial_inertia_in_root_frame(robot):
    state = _random_state(robot, 3)
    inertia = state.spatial_inertia(robot.forearm)
    assert inertia.frame is robot.world.frame
    np.testing.assert_allclose(inertia.mass, 1.0)
    com = state.transform_to_root(robot.forearm.frame).transform_point(jnp.array([0.0, 0.0, 0.4]))
    np.testing.assert_allclose(inertia.center_of_mass, com, atol=1e-12)


def test_composite_rigid_body_inertias(robot):
    """Children of the root carry their own inertia; deeper bodies add the parent's composite inertia."""
    state = _random_state(robot, 4)

    def matrix(inertia):
        return inertia.to_matrix()

    np.testing.assert_allclose(matrix(state.crb_inertia(robot.upper_arm)), matrix(state.spatial_inertia(robot.upper_arm)))
    np.testing.assert_allclose(matrix(state.crb_inertia(robot.floater)), matrix(state.spatial_inertia(robot.floater)))
    np.testing.assert_allclose(
        matrix(state.crb_inertia(robot.forearm)),
        matrix(state.spatial_inertia(robot.upper_arm) + state.spatial_inertia(robot.forearm)),
        atol=1e-12,
    )
    np.testing.assert_allclose(
        matrix(state.crb_inertia(robot.slider)),
        matrix(state.spatial_inertia(robot.upper_arm) + state.spatial_inertia(robot.slider)),
        atol=1e-12,
    )
    with pytest.raises(KeyError):
        state.crb_inertia(robot.world)


def test_cache_matches_fresh_state(robot):
    """After any sequence of updates the cache agrees with a freshly built state."""
    state = _random_state(robot, 5)
    bodies = robot.mechanism.non_root_bodies()
    for body in bodies:
        state.twist_wrt_world(body)
        state.crb_inertia(body)

    key_q, key_v = jax.random.split(jax.random.PRNGKey(6))
    state.rand_configuration(key_q)
    state.rand_velocity(key_v)
    fresh = MechanismState(robot.mechanism, state.q, state.v)

    for body in bodies:
        np.testing.assert_allclose(
            state.transform_to_root(body.frame).to_matrix(), fresh.transform_to_root(body.frame).to_matrix(), atol=1e-12
        )
        np.testing.assert_allclose(state.twist_wrt_world(body).to_vector(), fresh.twist_wrt_world(body).to_vector(), atol=1e-12)
        np.testing.assert_allclose(state.crb_inertia(body).to_matrix(), fresh.crb_inertia(body).to_matrix(), atol=1e-12)
    for joint in robot.mechanism.joints():
        np.testing.assert_allclose(
            state.motion_subspace(joint).to_matrix(), fresh.motion_subspace(joint).to_matrix(), atol=1e-12
        )
