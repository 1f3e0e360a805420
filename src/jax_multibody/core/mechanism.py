"""Rigid bodies, joints, and the tree-structured mechanism that connects them.

A mechanism keeps its topology in a ``DirectedGraph`` (bodies are vertices,
joints are edges pointing from predecessor to successor) together with a
``SpanningTree`` rooted at the root body. Bodies are only ever attached below
an existing body, so tree order is always parent-before-child, and it is also
the order in which joints own slices of the generalized coordinate vectors.
"""

import logging
from typing import Dict, List, Optional

from ..graphs import DirectedGraph, SpanningTree, TreePath
from ..joint_types import JointType
from ..spatial import CartesianFrame3D, SpatialInertia, Transform3D

logger = logging.getLogger(__name__)


class RigidBody:
    """A rigid body with its own frame and, except for the root, an inertia.

    Attributes:
        name: body name.
        frame: the body's default frame.
        inertia: spatial inertia expressed in a frame fixed to the body, or None.
        index: vertex index stamped by the mechanism graph (-1 when detached).
    """

    def __init__(self, name: str, inertia: Optional[SpatialInertia] = None):
        self.name = name
        self.frame = inertia.frame if inertia is not None else CartesianFrame3D(name)
        self.inertia = inertia
        self.index = -1

    def __repr__(self) -> str:
        return f"RigidBody({self.name!r})"


class Joint:
    """A joint between two bodies.

    Attributes:
        name: joint name.
        joint_type: the ``JointType`` providing the kinematics.
        frame_before: frame fixed to the predecessor body.
        frame_after: frame fixed to the successor body.
        index: edge index stamped by the mechanism graph (-1 when detached).
    """

    def __init__(self, name: str, joint_type: JointType):
        self.name = name
        self.joint_type = joint_type
        self.frame_before = CartesianFrame3D(f"before_{name}")
        self.frame_after = CartesianFrame3D(f"after_{name}")
        self.index = -1

    def __repr__(self) -> str:
        return f"Joint({self.name!r}, {self.joint_type})"

    @property
    def num_positions(self) -> int:
        return self.joint_type.num_positions

    @property
    def num_velocities(self) -> int:
        return self.joint_type.num_velocities

    def joint_transform(self, q):
        return self.joint_type.joint_transform(self.frame_after, self.frame_before, q)

    def joint_twist(self, q, v):
        return self.joint_type.joint_twist(self.frame_after, self.frame_before, q, v)

    def motion_subspace(self, q):
        return self.joint_type.motion_subspace(self.frame_after, self.frame_before, q)

    def bias_acceleration(self, q, v):
        return self.joint_type.bias_acceleration(self.frame_after, self.frame_before, q, v)

    def joint_torque(self, q, joint_wrench):
        return self.joint_type.joint_torque(q, joint_wrench)

    def flip_direction(self) -> None:
        """Swap the two sides of the joint in place, flipping its type and exchanging its frames."""
        self.joint_type = self.joint_type.flip_direction()
        self.frame_before, self.frame_after = self.frame_after, self.frame_before


class Mechanism:
    """Tree of rigid bodies connected by joints.

    Example:
        >>> world = RigidBody("world")
        >>> mechanism = Mechanism(world)
        >>> link = RigidBody("link", SpatialInertia.from_com(CartesianFrame3D("link"), 1.0, [0, 0, 0.5], jnp.eye(3)))
        >>> joint = Joint("shoulder", Revolute(jnp.array([0.0, 0.0, 1.0])))
        >>> mechanism.attach(world, joint, Transform3D.identity(joint.frame_before, world.frame), link)

    The topology is fixed once a ``MechanismState`` has been built for the
    mechanism: from then on ``attach`` and ``add_body_fixed_frame`` raise
    ``ValueError``, since existing state caches would not see the change.
    """

    def __init__(self, root_body: RigidBody):
        self._graph: DirectedGraph[RigidBody, Joint] = DirectedGraph()
        self._graph.add_vertex(root_body)
        self._tree: SpanningTree[RigidBody, Joint] = SpanningTree(self._graph, [], root=root_body)
        self._joint_to_predecessor: Dict[Joint, Transform3D] = {}
        self._body_fixed_frames: Dict[RigidBody, List[Transform3D]] = {root_body: []}
        self._body_frames: Dict[RigidBody, List[CartesianFrame3D]] = {root_body: [root_body.frame]}
        self._position_starts: Dict[Joint, int] = {}
        self._velocity_starts: Dict[Joint, int] = {}
        self._num_positions = 0
        self._num_velocities = 0
        self._frozen = False

    def __repr__(self) -> str:
        return f"Mechanism({len(self.bodies())} bodies, {len(self.joints())} joints)"

    def __str__(self) -> str:
        return str(self._tree)

    @property
    def graph(self) -> DirectedGraph:
        return self._graph

    @property
    def tree(self) -> SpanningTree:
        return self._tree

    @property
    def root_body(self) -> RigidBody:
        return self._tree.root

    @property
    def root_frame(self) -> CartesianFrame3D:
        return self.root_body.frame

    @property
    def num_positions(self) -> int:
        return self._num_positions

    @property
    def num_velocities(self) -> int:
        return self._num_velocities

    def bodies(self) -> List[RigidBody]:
        """All bodies, parents before children."""
        return self._tree.vertices

    def joints(self) -> List[Joint]:
        """All joints in tree order."""
        return list(self._tree.edges)

    def non_root_bodies(self) -> List[RigidBody]:
        return self.bodies()[1:]

    def is_root(self, body: RigidBody) -> bool:
        return body is self.root_body

    def parent(self, body: RigidBody) -> RigidBody:
        return self._tree.parent(body)

    def children(self, body: RigidBody) -> List[RigidBody]:
        return self._tree.children(body)

    def joint_to_parent(self, body: RigidBody) -> Joint:
        return self._tree.edge_to_parent(body)

    def predecessor(self, joint: Joint) -> RigidBody:
        return self._graph.source(joint)

    def successor(self, joint: Joint) -> RigidBody:
        return self._graph.target(joint)

    def path(self, from_body: RigidBody, to_body: RigidBody) -> TreePath:
        return self._tree.path(from_body, to_body)

    def joint_to_predecessor(self, joint: Joint) -> Transform3D:
        """Fixed transform from ``joint.frame_before`` to a frame of the predecessor."""
        return self._joint_to_predecessor[joint]

    def body_fixed_frame_definitions(self, body: RigidBody) -> List[Transform3D]:
        """Fixed transforms defining the extra frames of ``body``, in definition order."""
        return self._body_fixed_frames[body]

    def position_range(self, joint: Joint) -> range:
        start = self._position_starts[joint]
        return range(start, start + joint.num_positions)

    def velocity_range(self, joint: Joint) -> range:
        start = self._velocity_starts[joint]
        return range(start, start + joint.num_velocities)

    def _freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ValueError("The mechanism can no longer change, a MechanismState has been built for it")

    def _check_body_frame(self, body: RigidBody, frame: CartesianFrame3D) -> None:
        if not any(frame is f for f in self._body_frames[body]):
            raise ValueError(f"{frame} is not a frame fixed to {body!r}")

    def attach(
        self,
        predecessor: RigidBody,
        joint: Joint,
        joint_to_predecessor: Transform3D,
        successor: RigidBody,
        successor_to_joint: Optional[Transform3D] = None,
    ) -> "Mechanism":
        """Attach ``successor`` below ``predecessor`` through ``joint``.

        Args:
            predecessor: a body already in the mechanism.
            joint: a new joint.
            joint_to_predecessor: fixed transform from ``joint.frame_before`` to
                a frame of the predecessor.
            successor: a new body; it must carry an inertia.
            successor_to_joint: fixed transform from the successor's frame to
                ``joint.frame_after``; identity when omitted.
        """
        self._check_mutable()
        if predecessor not in self._body_fixed_frames:
            raise ValueError(f"{predecessor!r} is not part of this mechanism")
        if successor in self._body_fixed_frames:
            raise ValueError(f"{successor!r} is already part of this mechanism")
        if joint in self._joint_to_predecessor:
            raise ValueError(f"{joint!r} is already part of this mechanism")
        if successor.inertia is None:
            raise ValueError(f"{successor!r} needs an inertia to be attached")
        if joint_to_predecessor.frame_from is not joint.frame_before:
            raise ValueError(f"joint_to_predecessor must map from {joint.frame_before}")
        self._check_body_frame(predecessor, joint_to_predecessor.frame_to)
        if successor_to_joint is None:
            successor_to_joint = Transform3D.identity(successor.frame, joint.frame_after)
        if successor_to_joint.frame_from is not successor.frame or successor_to_joint.frame_to is not joint.frame_after:
            raise ValueError(f"successor_to_joint must map from {successor.frame} to {joint.frame_after}")

        self._tree.add_edge(predecessor, successor, joint)
        self._joint_to_predecessor[joint] = joint_to_predecessor
        self._body_fixed_frames[successor] = [successor_to_joint]
        self._body_frames[successor] = [joint.frame_after, successor.frame]
        self._position_starts[joint] = self._num_positions
        self._velocity_starts[joint] = self._num_velocities
        self._num_positions += joint.num_positions
        self._num_velocities += joint.num_velocities
        logger.debug("Attached %r to %r through %r", successor, predecessor, joint)
        return self

    def add_body_fixed_frame(self, body: RigidBody, transform: Transform3D) -> "Mechanism":
        """Define ``transform.frame_from`` as a new frame rigidly attached to ``body``."""
        self._check_mutable()
        if body not in self._body_fixed_frames:
            raise ValueError(f"{body!r} is not part of this mechanism")
        self._check_body_frame(body, transform.frame_to)
        if any(transform.frame_from is f for frames in self._body_frames.values() for f in frames):
            raise ValueError(f"{transform.frame_from} is already defined in this mechanism")
        self._body_fixed_frames[body].append(transform)
        self._body_frames[body].append(transform.frame_from)
        return self
