"""Shared mechanism fixtures."""

from types import SimpleNamespace

import jax.numpy as jnp
import pytest

import jax_multibody  # noqa: F401  (enables float64)
from jax_multibody.core import Joint, Mechanism, RigidBody
from jax_multibody.joint_types import Prismatic, QuaternionFloating, Revolute
from jax_multibody.spatial import CartesianFrame3D, SpatialInertia, Transform3D


def make_body(name, mass=1.0, com=(0.0, 0.0, 0.0), moment=(0.1, 0.2, 0.3)):
    inertia = SpatialInertia.from_com(CartesianFrame3D(name), mass, jnp.array(com), jnp.diag(jnp.array(moment)))
    return RigidBody(name, inertia)


def build_mechanism():
    """Branched test mechanism.

    world
    ├── shoulder (revolute z) -> upper_arm
    │   ├── elbow (revolute y, 1 m up) -> forearm
    │   └── slide (prismatic x) -> slider
    └── free (quaternion floating) -> floater
    """
    world = RigidBody("world")
    mechanism = Mechanism(world)

    upper_arm = make_body("upper_arm", mass=2.0, com=(0.0, 0.0, 0.5))
    shoulder = Joint("shoulder", Revolute(jnp.array([0.0, 0.0, 1.0])))
    mechanism.attach(world, shoulder, Transform3D.identity(shoulder.frame_before, world.frame), upper_arm)

    forearm = make_body("forearm", mass=1.0, com=(0.0, 0.0, 0.4))
    elbow = Joint("elbow", Revolute(jnp.array([0.0, 1.0, 0.0])))
    mechanism.attach(
        upper_arm, elbow,
        Transform3D.from_translation(elbow.frame_before, upper_arm.frame, jnp.array([0.0, 0.0, 1.0])),
        forearm,
        Transform3D.from_translation(forearm.frame, elbow.frame_after, jnp.array([0.0, 0.0, 0.1])),
    )

    slider = make_body("slider", mass=0.5, com=(0.1, 0.0, 0.0))
    slide = Joint("slide", Prismatic(jnp.array([1.0, 0.0, 0.0])))
    mechanism.attach(
        upper_arm, slide,
        Transform3D.from_translation(slide.frame_before, upper_arm.frame, jnp.array([0.2, 0.0, 0.5])),
        slider,
    )

    floater = make_body("floater", mass=3.0, com=(0.0, 0.1, 0.0))
    free = Joint("free", QuaternionFloating())
    mechanism.attach(world, free, Transform3D.identity(free.frame_before, world.frame), floater)

    return SimpleNamespace(
        mechanism=mechanism,
        world=world, upper_arm=upper_arm, forearm=forearm, slider=slider, floater=floater,
        shoulder=shoulder, elbow=elbow, slide=slide, free=free,
    )


@pytest.fixture
def robot():
    return build_mechanism()
