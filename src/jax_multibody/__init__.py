"""
JAX Multibody: kinematics of tree-structured rigid body mechanisms.

The mechanism topology lives in an indexed directed graph with a rooted
spanning tree; joint types supply per-joint kinematics; a lazily recomputed
cache composes them into transforms, twists, motion subspaces and inertias.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from . import spatial
from . import graphs
from . import joint_types
from . import core
from . import chain

__version__ = "0.1.0"
__all__ = ["transforms", "spatial", "graphs", "joint_types", "core", "chain"]
