"""SE(3) and se(3) operations in JAX.

Transforms are 4x4 homogeneous matrices. Twists (se(3) elements) are
6-vectors ordered angular first: [wx, wy, wz, vx, vy, vz].
"""


import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array

SMALL_ANGLE = 1e-6
# The se(3) Jacobian coefficients cancel badly well before SMALL_ANGLE.
SERIES_ANGLE = 1e-3


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Build homogeneous transforms from translations and rotations.

    Args:
        p: (..., 3) translation
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous matrix
    """
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=jnp.result_type(p, R))
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)
    return T


def exp(twist: Array) -> Array:
    """
    SE(3) exponential map.

    Args:
        twist: (..., 6) twists, angular part first

    Returns:
        (..., 4, 4) homogeneous matrices
    """
    w, v = twist[..., :3], twist[..., 3:]
    angle_sq = jnp.sum(w * w, axis=-1)
    small = angle_sq < SMALL_ANGLE ** 2
    safe_angle = jnp.sqrt(jnp.where(small, 1.0, angle_sq))

    # V = I + A K + B K^2 with A = (1 - cos t) / t^2, B = (t - sin t) / t^3
    A = jnp.where(small, 0.5 - angle_sq / 24.0, (1.0 - jnp.cos(safe_angle)) / safe_angle ** 2)
    B = jnp.where(small, 1.0 / 6.0 - angle_sq / 120.0, (safe_angle - jnp.sin(safe_angle)) / safe_angle ** 3)

    K = so3.skew_symmetric(w)
    I = jnp.broadcast_to(jnp.eye(3, dtype=twist.dtype), K.shape)
    V = I + A[..., None, None] * K + B[..., None, None] * jnp.matmul(K, K)

    t = jnp.einsum("...ij,...j->...i", V, v)
    return from_position_and_rotation(t, so3.exp(w))


def log(T: Array) -> Array:
    """
    SE(3) logarithm map, the inverse of exp().

    Args:
        T: (..., 4, 4) homogeneous matrices

    Returns:
        (..., 6) twists, angular part first
    """
    R, t = T[..., :3, :3], T[..., :3, 3]
    w = so3.log(R)
    angle_sq = jnp.sum(w * w, axis=-1)
    small = angle_sq < SMALL_ANGLE ** 2
    safe_angle = jnp.sqrt(jnp.where(small, 1.0, angle_sq))
    half = safe_angle / 2.0

    # V^-1 = I - K/2 + C K^2 with C = (1 - (t/2) cot(t/2)) / t^2
    C = jnp.where(small, 1.0 / 12.0, (1.0 - half * jnp.cos(half) / jnp.sin(half)) / safe_angle ** 2)

    K = so3.skew_symmetric(w)
    I = jnp.broadcast_to(jnp.eye(3, dtype=T.dtype), K.shape)
    V_inv = I - 0.5 * K + C[..., None, None] * jnp.matmul(K, K)

    v = jnp.einsum("...ij,...j->...i", V_inv, t)
    return jnp.concatenate([w, v], axis=-1)


def inverse(T: Array) -> Array:
    """
    Inverse of a homogeneous transform using its block structure.

    Args:
        T: (..., 4, 4) homogeneous matrix

    Returns:
        (..., 4, 4) inverse
    """
    R_inv = jnp.swapaxes(T[..., :3, :3], -1, -2)
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, T[..., :3, 3])
    return from_position_and_rotation(t_inv, R_inv)


def apply(T: Array, points: Array) -> Array:
    """Apply homogeneous transforms to (..., 3) points."""
    return jnp.einsum("...ij,...j->...i", T[..., :3, :3], points) + T[..., :3, 3]


def adjoint(T: Array) -> Array:
    """
    Adjoint of a transform, acting on angular-first twists.

    Ad_T = [[R, 0], [[p]x R, R]]

    Args:
        T: (..., 4, 4) homogeneous matrix

    Returns:
        (..., 6, 6) adjoint matrix
    """
    R = T[..., :3, :3]
    p_skew = so3.skew_symmetric(T[..., :3, 3])
    zeros = jnp.zeros_like(R)
    top = jnp.concatenate([R, zeros], axis=-1)
    bottom = jnp.concatenate([jnp.matmul(p_skew, R), R], axis=-1)
    return jnp.concatenate([top, bottom], axis=-2)


def ad(twist: Array) -> Array:
    """
    Lie bracket matrix of a twist: ad(a) @ b == [a, b].

    Args:
        twist: (..., 6) twist, angular part first

    Returns:
        (..., 6, 6) matrix [[w]x, 0], [[v]x, [w]x]]
    """
    W = so3.skew_symmetric(twist[..., :3])
    V = so3.skew_symmetric(twist[..., 3:])
    top = jnp.concatenate([W, jnp.zeros_like(W)], axis=-1)
    bottom = jnp.concatenate([V, W], axis=-1)
    return jnp.concatenate([top, bottom], axis=-2)


def right_jacobian_inverse(twist: Array) -> Array:
    """
    Inverse right Jacobian of SE(3).

    If T(t) = exp(xi(t)) and T^-1 dT/dt is the body twist V, then
    d(xi)/dt = right_jacobian_inverse(xi) @ V. Uses the closed form
    I + ad/2 + c2 ad^2 + c4 ad^4.

    Args:
        twist: (..., 6) exponential coordinates, angular part first

    Returns:
        (..., 6, 6) matrix
    """
    w = twist[..., :3]
    angle_sq = jnp.sum(w * w, axis=-1)
    small = angle_sq < SERIES_ANGLE ** 2
    t = jnp.sqrt(jnp.where(small, 1.0, angle_sq))
    s, c = jnp.sin(t), jnp.cos(t)

    c2 = jnp.where(small, 1.0 / 12.0,
                   2.0 / t ** 2 + (t + 3.0 * s) / (4.0 * t * (c - 1.0)))
    c4 = jnp.where(small, -1.0 / 720.0,
                   1.0 / t ** 4 + (t + s) / (4.0 * t ** 3 * (c - 1.0)))

    A = ad(twist)
    A2 = jnp.matmul(A, A)
    I = jnp.broadcast_to(jnp.eye(6, dtype=twist.dtype), A.shape)
    return I + 0.5 * A + c2[..., None, None] * A2 + c4[..., None, None] * jnp.matmul(A2, A2)
