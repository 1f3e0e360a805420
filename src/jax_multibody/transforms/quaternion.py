"""Unit quaternion utilities in JAX.

Quaternions are (..., 4) arrays in (w, x, y, z) order.
"""

import jax
import jax.numpy as jnp

# Type aliases
Array = jax.Array


def normalize(quaternions: Array) -> Array:
    """Normalize quaternions to unit length."""
    return quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)


def identity(dtype=jnp.float64) -> Array:
    return jnp.array([1.0, 0.0, 0.0, 0.0], dtype=dtype)


def conjugate(q: Array) -> Array:
    return q * jnp.array([1.0, -1.0, -1.0, -1.0], dtype=q.dtype)


def multiply(a: Array, b: Array) -> Array:
    """
    Hamilton product a * b.

    Args:
        a: (..., 4) left factor
        b: (..., 4) right factor

    Returns:
        (..., 4) product
    """
    wa, va = a[..., 0], a[..., 1:]
    wb, vb = b[..., 0], b[..., 1:]
    w = wa * wb - jnp.sum(va * vb, axis=-1)
    v = wa[..., None] * vb + wb[..., None] * va + jnp.cross(va, vb)
    return jnp.concatenate([w[..., None], v], axis=-1)


def derivative(q: Array, angular_velocity_in_body: Array) -> Array:
    """
    Time derivative of a unit quaternion given body-frame angular velocity.

    q_dot = q * (0, omega) / 2

    Args:
        q: (..., 4) unit quaternion
        angular_velocity_in_body: (..., 3) angular velocity expressed in the
            rotated (body) frame

    Returns:
        (..., 4) quaternion derivative
    """
    omega = jnp.concatenate(
        [jnp.zeros_like(angular_velocity_in_body[..., :1]), angular_velocity_in_body], axis=-1
    )
    return 0.5 * multiply(q, omega)


def angular_velocity_in_body(q: Array, q_dot: Array) -> Array:
    """Inverse of derivative(): omega = 2 vec(conj(q) * q_dot) for unit q."""
    return 2.0 * multiply(conjugate(q), q_dot)[..., 1:]


def random(key: Array, shape=(), dtype=jnp.float64) -> Array:
    """
    Uniformly distributed unit quaternions with non-negative scalar part.

    Args:
        key: jax.random key
        shape: batch shape

    Returns:
        (*shape, 4) unit quaternions
    """
    q = normalize(jax.random.normal(key, tuple(shape) + (4,), dtype=dtype))
    return jnp.where(q[..., 0:1] < 0, -q, q)
