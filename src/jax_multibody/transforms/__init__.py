"""
Pure JAX rotation and rigid-transform helpers.

- SO(3) rotations (so3 module)
- SE(3) rigid body transforms (se3 module)
- unit quaternions (quaternion module)

All functions are stateless and broadcast over leading batch dimensions.
"""

from . import so3
from . import se3
from . import quaternion

__all__ = [
    "so3",
    "se3",
    "quaternion",
]
