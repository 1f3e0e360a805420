"""SO(3) rotation helpers in JAX.

Rotations are 3x3 matrices, tangent vectors are rotation vectors (axis times
angle). Every function broadcasts over leading batch dimensions.
"""

import jax
import jax.numpy as jnp

Array = jax.Array

# Below this angle the closed-form coefficients switch to Taylor expansions.
SMALL_ANGLE = 1e-8


def skew_symmetric(v: Array) -> Array:
    """
    Cross-product matrix of a 3-vector, so that skew_symmetric(a) @ b == a x b.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix
    """
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)
    x, y, z = v[..., 0], v[..., 1], v[..., 2]

    return jnp.stack([
        jnp.stack([zeros, -z, y], axis=-1),
        jnp.stack([z, zeros, -x], axis=-1),
        jnp.stack([-y, x, zeros], axis=-1),
    ], axis=-2)


def exp(rotation_vector: Array) -> Array:
    """
    SO(3) exponential map (Rodrigues' formula).

    Args:
        rotation_vector: (..., 3) axis-angle vectors

    Returns:
        (..., 3, 3) rotation matrices
    """
    # norm only away from zero, its derivative there is 0/0
    angle_sq = jnp.sum(rotation_vector * rotation_vector, axis=-1)
    small = angle_sq < SMALL_ANGLE ** 2
    safe_angle = jnp.sqrt(jnp.where(small, 1.0, angle_sq))
    half = safe_angle / 2.0

    # sin(t)/t and (1 - cos(t))/t^2, with their series near zero
    a = jnp.where(small, 1.0 - angle_sq / 6.0, jnp.sin(safe_angle) / safe_angle)
    b = jnp.where(small, 0.5 - angle_sq / 24.0, 0.5 * (jnp.sin(half) / half) ** 2)

    K = skew_symmetric(rotation_vector)
    I = jnp.broadcast_to(jnp.eye(3, dtype=rotation_vector.dtype), K.shape)
    return I + a[..., None, None] * K + b[..., None, None] * jnp.matmul(K, K)


def angle_axis(angle: Array, axis: Array) -> Array:
    """Rotation by ``angle`` about the unit vector ``axis``."""
    return exp(jnp.asarray(angle)[..., None] * axis)


def log(R: Array) -> Array:
    """
    SO(3) logarithm map: rotation matrix to rotation vector.

    Handles the identity and the angle-near-pi cases separately.

    Args:
        R: (..., 3, 3) rotation matrices

    Returns:
        (..., 3) rotation vectors with angle in [0, pi]
    """
    trace = jnp.trace(R, axis1=-2, axis2=-1)
    cos_angle = jnp.clip((trace - 1.0) / 2.0, -1.0, 1.0)
    # arccos has an infinite slope at 1; keep the identity out of it
    small = cos_angle >= jnp.cos(SMALL_ANGLE)
    angle = jnp.arccos(jnp.where(small, 0.0, cos_angle))

    near_pi = jnp.abs(angle - jnp.pi) < 1e-6

    vee = jnp.stack([
        R[..., 2, 1] - R[..., 1, 2],
        R[..., 0, 2] - R[..., 2, 0],
        R[..., 1, 0] - R[..., 0, 1],
    ], axis=-1)

    safe_sin = jnp.where(small | near_pi, 1.0, jnp.sin(angle))
    general = vee * (angle / (2.0 * safe_sin))[..., None]
    near_identity = vee / 2.0

    # Near pi the antisymmetric part vanishes; recover the axis from the
    # largest column of (R + I) / 2 = axis axis^T.
    B = (R + jnp.eye(3, dtype=R.dtype)) / 2.0
    column = jnp.argmax(jnp.diagonal(B, axis1=-2, axis2=-1), axis=-1)
    axis_pi = jnp.take_along_axis(B, column[..., None, None], axis=-1)[..., 0]
    axis_pi = axis_pi / jnp.linalg.norm(axis_pi, axis=-1, keepdims=True)
    # pick the sign consistent with the (small) antisymmetric part
    axis_pi = jnp.where(jnp.sum(axis_pi * vee, axis=-1, keepdims=True) < 0, -axis_pi, axis_pi)

    return jnp.where(
        small[..., None],
        near_identity,
        jnp.where(near_pi[..., None], angle[..., None] * axis_pi, general),
    )


def from_quaternion(quaternions: Array) -> Array:
    """
    Rotation matrices from (w, x, y, z) quaternions.

    The input is normalized first, so any non-zero quaternion is accepted.

    Args:
        quaternions: (..., 4) quaternions

    Returns:
        (..., 3, 3) rotation matrices
    """
    quaternions = quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)
    w, x, y, z = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x * x, y * y, z * z
    wx, wy, wz = w * x, w * y, w * z
    xy, xz, yz = x * y, x * z, y * z

    return jnp.stack([
        jnp.stack([1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)], axis=-1),
        jnp.stack([2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)], axis=-1),
        jnp.stack([2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)], axis=-1),
    ], axis=-2)


def to_quaternion(matrix: Array) -> Array:
    """
    Unit (w, x, y, z) quaternions from rotation matrices, with w >= 0.

    Each batch element picks the numerically best of the four standard
    extraction branches.

    Args:
        matrix: (..., 3, 3) rotation matrices

    Returns:
        (..., 4) quaternions
    """
    m00, m01, m02 = matrix[..., 0, 0], matrix[..., 0, 1], matrix[..., 0, 2]
    m10, m11, m12 = matrix[..., 1, 0], matrix[..., 1, 1], matrix[..., 1, 2]
    m20, m21, m22 = matrix[..., 2, 0], matrix[..., 2, 1], matrix[..., 2, 2]
    trace = m00 + m11 + m22

    eps = jnp.finfo(matrix.dtype).eps
    candidates = [
        (jnp.stack([trace + 1.0, m21 - m12, m02 - m20, m10 - m01], axis=-1), 1.0 + trace),
        (jnp.stack([m21 - m12, m00 - m11 - m22 + 1.0, m01 + m10, m02 + m20], axis=-1), 1.0 + m00 - m11 - m22),
        (jnp.stack([m02 - m20, m01 + m10, m11 - m00 - m22 + 1.0, m12 + m21], axis=-1), 1.0 + m11 - m00 - m22),
        (jnp.stack([m10 - m01, m02 + m20, m12 + m21, m22 - m00 - m11 + 1.0], axis=-1), 1.0 + m22 - m00 - m11),
    ]
    candidates = [0.5 * q / jnp.sqrt(jnp.maximum(s, eps))[..., None] for q, s in candidates]

    use0 = trace > 0
    use1 = ~use0 & (m00 > m11) & (m00 > m22)
    use2 = ~use0 & ~use1 & (m11 > m22)
    use3 = ~use0 & ~use1 & ~use2

    quaternion = sum(
        jnp.where(mask[..., None], q, 0.0)
        for mask, q in zip((use0, use1, use2, use3), candidates)
    )
    quaternion = jnp.where(quaternion[..., 0:1] < 0, -quaternion, quaternion)
    return quaternion / jnp.linalg.norm(quaternion, axis=-1, keepdims=True)


def right_jacobian_inverse(rotation_vector: Array) -> Array:
    """
    Inverse right Jacobian of SO(3).

    Maps a body-frame angular velocity to the time derivative of the rotation
    vector: phi_dot = right_jacobian_inverse(phi) @ omega_body.

    Args:
        rotation_vector: (..., 3) rotation vectors

    Returns:
        (..., 3, 3) matrices
    """
    angle_sq = jnp.sum(rotation_vector * rotation_vector, axis=-1)
    small = angle_sq < 1e-12
    safe_angle = jnp.sqrt(jnp.where(small, 1.0, angle_sq))
    half = safe_angle / 2.0
    c = jnp.where(small, 1.0 / 12.0, (1.0 - half * jnp.cos(half) / jnp.sin(half)) / safe_angle ** 2)

    K = skew_symmetric(rotation_vector)
    I = jnp.broadcast_to(jnp.eye(3, dtype=rotation_vector.dtype), K.shape)
    return I + 0.5 * K + c[..., None, None] * jnp.matmul(K, K)
