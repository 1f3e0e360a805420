"""Tests for joint types."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

import jax_multibody  # noqa: F401  (enables float64)
from jax_multibody.joint_types import Fixed, JointType, Prismatic, QuaternionFloating, Revolute
from jax_multibody.spatial import CartesianFrame3D, Wrench

FRAME_AFTER = CartesianFrame3D("after")
FRAME_BEFORE = CartesianFrame3D("before")


def _joint_types():
    key1, key2 = jax.random.split(jax.random.PRNGKey(0))
    return [QuaternionFloating(), Revolute.random(key1), Prismatic.random(key2), Fixed()]


def _random_state(joint_type, seed):
    key_q, key_v = jax.random.split(jax.random.PRNGKey(seed))
    q = joint_type.rand_configuration(key_q)
    v = jax.random.normal(key_v, (joint_type.num_velocities,))
    return q, v


def test_revolute_twist():
    """Unit speed about z gives a unit angular velocity about z and no linear velocity."""
    joint_type = Revolute(jnp.array([0.0, 0.0, 1.0]))
    twist = joint_type.joint_twist(FRAME_AFTER, FRAME_BEFORE, jnp.array([0.0]), jnp.array([1.0]))

    assert twist.body is FRAME_AFTER
    assert twist.base is FRAME_BEFORE
    assert twist.frame is FRAME_AFTER
    np.testing.assert_allclose(twist.angular, jnp.array([0.0, 0.0, 1.0]))
    np.testing.assert_allclose(twist.linear, jnp.zeros(3))


def test_revolute_transform():
    joint_type = Revolute(jnp.array([0.0, 0.0, 1.0]))
    t = joint_type.joint_transform(FRAME_AFTER, FRAME_BEFORE, jnp.array([jnp.pi / 2]))
    assert t.frame_from is FRAME_AFTER
    assert t.frame_to is FRAME_BEFORE
    np.testing.assert_allclose(t.transform_point(jnp.array([1.0, 0.0, 0.0])), jnp.array([0.0, 1.0, 0.0]), atol=1e-12)


def test_prismatic_transform_and_twist():
    axis = jnp.array([0.0, 0.6, 0.8])
    joint_type = Prismatic(axis)
    t = joint_type.joint_transform(FRAME_AFTER, FRAME_BEFORE, jnp.array([2.0]))
    np.testing.assert_allclose(t.rot, jnp.eye(3))
    np.testing.assert_allclose(t.trans, 2.0 * axis)

    twist = joint_type.joint_twist(FRAME_AFTER, FRAME_BEFORE, jnp.array([2.0]), jnp.array([-0.5]))
    np.testing.assert_allclose(twist.angular, jnp.zeros(3))
    np.testing.assert_allclose(twist.linear, -0.5 * axis)


def test_floating_transform():
    joint_type = QuaternionFloating()
    q = jnp.array([jnp.cos(jnp.pi / 4), 0.0, 0.0, jnp.sin(jnp.pi / 4), 1.0, 2.0, 3.0])
    t = joint_type.joint_transform(FRAME_AFTER, FRAME_BEFORE, q)
    np.testing.assert_allclose(t.transform_point(jnp.array([1.0, 0.0, 0.0])), jnp.array([1.0, 3.0, 3.0]), atol=1e-12)


def test_fixed_joint():
    joint_type = Fixed()
    q = joint_type.zero_configuration()
    assert joint_type.num_positions == 0
    assert joint_type.num_velocities == 0
    assert q.shape == (0,)

    t = joint_type.joint_transform(FRAME_AFTER, FRAME_BEFORE, q)
    np.testing.assert_allclose(t.to_matrix(), jnp.eye(4))
    twist = joint_type.joint_twist(FRAME_AFTER, FRAME_BEFORE, q, jnp.zeros(0))
    np.testing.assert_allclose(twist.to_vector(), jnp.zeros(6))
    assert joint_type.motion_subspace(FRAME_AFTER, FRAME_BEFORE, q).num_cols == 0
    assert joint_type.joint_torque(q, Wrench.zero(FRAME_AFTER)).shape == (0,)


@pytest.mark.parametrize("joint_type", _joint_types(), ids=str)
def test_dimensions(joint_type):
    q, v = _random_state(joint_type, 1)
    assert q.shape == (joint_type.num_positions,)
    assert joint_type.zero_configuration().shape == (joint_type.num_positions,)
    subspace = joint_type.motion_subspace(FRAME_AFTER, FRAME_BEFORE, q)
    assert subspace.to_matrix().shape == (6, joint_type.num_velocities)


@pytest.mark.parametrize("joint_type", _joint_types(), ids=str)
def test_motion_subspace_spans_joint_twist(joint_type):
    """S(q) v equals the joint twist."""
    q, v = _random_state(joint_type, 2)
    twist = joint_type.joint_twist(FRAME_AFTER, FRAME_BEFORE, q, v)
    subspace = joint_type.motion_subspace(FRAME_AFTER, FRAME_BEFORE, q)
    np.testing.assert_allclose(subspace.twist(v).to_vector(), twist.to_vector(), atol=1e-12)


@pytest.mark.parametrize("joint_type", _joint_types(), ids=str)
def test_bias_acceleration_is_zero(joint_type):
    q, v = _random_state(joint_type, 3)
    bias = joint_type.bias_acceleration(FRAME_AFTER, FRAME_BEFORE, q, v)
    assert bias.body is FRAME_AFTER and bias.base is FRAME_BEFORE
    np.testing.assert_allclose(bias.to_vector(), jnp.zeros(6))


@pytest.mark.parametrize("joint_type", _joint_types(), ids=str)
def test_velocity_configuration_derivative_roundtrip(joint_type):
    q, v = _random_state(joint_type, 4)
    q_dot = joint_type.velocity_to_configuration_derivative(q, v)
    assert q_dot.shape == (joint_type.num_positions,)
    np.testing.assert_allclose(joint_type.configuration_derivative_to_velocity(q, q_dot), v, atol=1e-12)


@pytest.mark.parametrize("joint_type", _joint_types(), ids=str)
def test_joint_torque_is_power_conjugate(joint_type):
    """tau . v equals the power of the wrench on the joint twist."""
    q, v = _random_state(joint_type, 5)
    key1, key2 = jax.random.split(jax.random.PRNGKey(6))
    wrench = Wrench(FRAME_AFTER, jax.random.normal(key1, (3,)), jax.random.normal(key2, (3,)))
    twist = joint_type.joint_twist(FRAME_AFTER, FRAME_BEFORE, q, v)

    tau = joint_type.joint_torque(q, wrench)
    assert tau.shape == (joint_type.num_velocities,)
    power = jnp.dot(wrench.angular, twist.angular) + jnp.dot(wrench.linear, twist.linear)
    np.testing.assert_allclose(jnp.dot(tau, v), power, atol=1e-12)


def test_revolute_joint_torque():
    joint_type = Revolute(jnp.array([0.0, 0.0, 1.0]))
    wrench = Wrench(FRAME_AFTER, jnp.array([1.0, 2.0, 3.0]), jnp.array([4.0, 5.0, 6.0]))
    np.testing.assert_allclose(joint_type.joint_torque(jnp.zeros(1), wrench), jnp.array([3.0]))


@pytest.mark.parametrize("joint_type", _joint_types(), ids=str)
@given(st.integers(min_value=0, max_value=10_000))
@settings(deadline=None, max_examples=25)
def test_local_global_coordinates_roundtrip(joint_type, seed):
    q0 = joint_type.rand_configuration(jax.random.PRNGKey(seed))
    q, v = _random_state(joint_type, seed + 1)

    phi, phi_dot = joint_type.local_coordinates(q0, q, v)
    assert phi.shape == (joint_type.num_velocities,)
    assert phi_dot.shape == (joint_type.num_velocities,)

    q_back = joint_type.global_coordinates(q0, phi)
    if isinstance(joint_type, QuaternionFloating):
        # q and -q describe the same orientation
        sign = jnp.sign(jnp.dot(q_back[:4], q[:4]))
        np.testing.assert_allclose(sign * q_back[:4], q[:4], atol=1e-9)
        np.testing.assert_allclose(q_back[4:], q[4:], atol=1e-9)
    else:
        np.testing.assert_allclose(q_back, q, atol=1e-12)

    # local coordinates around the configuration itself vanish
    phi_self, _ = joint_type.local_coordinates(q, q, v)
    np.testing.assert_allclose(phi_self, jnp.zeros(joint_type.num_velocities), atol=1e-9)


def test_floating_local_coordinates_derivative():
    """phi_dot matches a finite difference of phi along the motion."""
    joint_type = QuaternionFloating()
    q0 = joint_type.rand_configuration(jax.random.PRNGKey(9))
    q, v = _random_state(joint_type, 10)
    q_dot = joint_type.velocity_to_configuration_derivative(q, v)
    eps = 1e-6

    phi_plus, _ = joint_type.local_coordinates(q0, q + eps * q_dot, v)
    phi_minus, _ = joint_type.local_coordinates(q0, q - eps * q_dot, v)
    _, phi_dot = joint_type.local_coordinates(q0, q, v)
    np.testing.assert_allclose(phi_dot, (phi_plus - phi_minus) / (2 * eps), atol=1e-5)


def test_floating_random_configuration():
    q = QuaternionFloating().rand_configuration(jax.random.PRNGKey(11))
    assert q.shape == (7,)
    np.testing.assert_allclose(jnp.linalg.norm(q[:4]), 1.0, atol=1e-12)
    np.testing.assert_allclose(QuaternionFloating().zero_configuration(), jnp.array([1.0, 0, 0, 0, 0, 0, 0]))


@pytest.mark.parametrize("joint_type", [Revolute(jnp.array([0.0, 0.0, 1.0])), Prismatic(jnp.array([1.0, 0.0, 0.0]))], ids=str)
def test_flip_direction_inverts_transform(joint_type):
    flipped = joint_type.flip_direction()
    q = jnp.array([0.7])
    t = joint_type.joint_transform(FRAME_AFTER, FRAME_BEFORE, q)
    t_flipped = flipped.joint_transform(FRAME_BEFORE, FRAME_AFTER, q)
    np.testing.assert_allclose(t_flipped.to_matrix(), t.inverse().to_matrix(), atol=1e-12)


def test_flip_direction_of_symmetric_joints():
    assert Fixed().flip_direction() == Fixed()
    assert isinstance(QuaternionFloating().flip_direction(), QuaternionFloating)


def test_joint_type_str():
    assert str(Fixed()) == "Fixed joint"
    assert str(QuaternionFloating()) == "Quaternion floating joint"
    assert str(Revolute(jnp.array([0.0, 0.0, 1.0]))).startswith("Revolute joint with axis")
    assert str(Prismatic(jnp.array([0.0, 0.0, 1.0]))).startswith("Prismatic joint with axis")


def test_incomplete_joint_type_cannot_be_instantiated():
    class HalfJoint(JointType):
        @property
        def num_positions(self):
            return 1

    with pytest.raises(TypeError):
        HalfJoint()


def test_joint_transform_jit_and_grad():
    """Joint kinematics are traceable: d(rotated point)/dq is the axis cross product."""
    joint_type = Revolute(jnp.array([0.0, 0.0, 1.0]))

    def rotated_x(angle):
        t = joint_type.joint_transform(FRAME_AFTER, FRAME_BEFORE, jnp.array([angle]))
        return t.transform_point(jnp.array([1.0, 0.0, 0.0]))

    np.testing.assert_allclose(jax.jit(rotated_x)(0.0), jnp.array([1.0, 0.0, 0.0]), atol=1e-12)
    np.testing.assert_allclose(jax.jacfwd(rotated_x)(0.0), jnp.array([0.0, 1.0, 0.0]), atol=1e-12)


def test_floating_local_coordinates_grad_at_reference():
    """Derivatives of the exponential chart stay finite where the relative rotation vanishes."""
    joint_type = QuaternionFloating()
    q0 = joint_type.rand_configuration(jax.random.PRNGKey(12))
    v = jnp.zeros(6)

    def phi(q):
        return joint_type.local_coordinates(q0, q, v)[0]

    jac = jax.jacfwd(phi)(q0)
    assert jnp.all(jnp.isfinite(jac))
    assert jnp.all(jnp.isfinite(jax.grad(lambda q: jnp.sum(phi(q)))(q0)))

    eps = 1e-6
    numerical = jnp.stack([(phi(q0 + eps * e) - phi(q0 - eps * e)) / (2 * eps) for e in jnp.eye(7)], axis=-1)
    np.testing.assert_allclose(jac, numerical, atol=1e-6)
