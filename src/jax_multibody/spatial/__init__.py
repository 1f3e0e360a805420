"""Frame-labeled spatial algebra types.

Transforms, twists, accelerations, Jacobians, wrenches and inertias carry
the frames they relate as static metadata and check them on every operation.
"""

from .frames import CartesianFrame3D
from .transform3d import Transform3D
from .motion import Twist, SpatialAcceleration, GeometricJacobian
from .force import Wrench, Momentum
from .inertia import SpatialInertia

__all__ = [
    "CartesianFrame3D",
    "Transform3D",
    "Twist",
    "SpatialAcceleration",
    "GeometricJacobian",
    "Wrench",
    "Momentum",
    "SpatialInertia",
]
