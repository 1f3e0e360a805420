"""Lazily recomputed kinematic quantities of a mechanism.

Each cached quantity is a cache element. Mutable elements hold an update
function and the elements it depends on; reading a dirty element first reads
its dependencies (recomputing any that are dirty themselves), then calls the
update function with the current ``MechanismState`` and the dependency values.
``MechanismStateCache.setdirty`` only flips flags, so after a state change the
cost of recomputation is paid by the first reader of each element, once.
"""

import logging
from functools import partial
from typing import TYPE_CHECKING, Callable, Dict, Generic, List, Sequence, TypeVar

from ..spatial import (
    CartesianFrame3D,
    GeometricJacobian,
    SpatialInertia,
    Transform3D,
    Twist,
)
from .mechanism import Joint, Mechanism, RigidBody

if TYPE_CHECKING:
    from .state import MechanismState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheElement(Generic[T]):
    """A cached value readable through ``get(state)``."""

    def get(self, state: "MechanismState") -> T:
        raise NotImplementedError

    def setdirty(self) -> None:
        raise NotImplementedError


class ImmutableCacheElement(CacheElement[T]):
    """A value that never goes stale."""

    __slots__ = ("_value",)

    def __init__(self, value: T):
        self._value = value

    def get(self, state: "MechanismState" = None) -> T:
        return self._value

    def setdirty(self) -> None:
        pass


class MutableCacheElement(CacheElement[T]):
    """A memoized value recomputed on the first read after ``setdirty``.

    Args:
        update: called as ``update(state, *dependency_values)``.
        dependencies: elements whose current values ``update`` consumes.
    """

    __slots__ = ("_update", "_dependencies", "_value", "dirty")

    def __init__(self, update: Callable[..., T], dependencies: Sequence[CacheElement] = ()):
        self._update = update
        self._dependencies = tuple(dependencies)
        self._value = None
        self.dirty = True

    @property
    def dependencies(self) -> Sequence[CacheElement]:
        return self._dependencies

    def setdirty(self) -> None:
        self.dirty = True

    def get(self, state: "MechanismState") -> T:
        if self.dirty:
            values = [dependency.get(state) for dependency in self._dependencies]
            self._value = self._update(state, *values)
            self.dirty = False
        return self._value


def _joint_transform(joint: Joint, state: "MechanismState") -> Transform3D:
    return joint.joint_transform(state.configuration(joint))


def _compose(state, parent_to_root: Transform3D, to_parent: Transform3D) -> Transform3D:
    return parent_to_root @ to_parent


def _twist_wrt_world(joint: Joint, body: RigidBody, parent: RigidBody, state,
                     parent_twist: Twist, after_to_root: Transform3D) -> Twist:
    twist = joint.joint_twist(state.configuration(joint), state.velocity(joint))
    # relabel: the joint frames move with the bodies they are fixed to
    twist = Twist(body.frame, parent.frame, twist.frame, twist.angular, twist.linear)
    return parent_twist + twist.transform(after_to_root)


def _motion_subspace(joint: Joint, state, after_to_root: Transform3D) -> GeometricJacobian:
    return joint.motion_subspace(state.configuration(joint)).transform(after_to_root)


def _spatial_inertia(body: RigidBody, state, inertia_frame_to_root: Transform3D) -> SpatialInertia:
    return body.inertia.transform(inertia_frame_to_root)


def _crb_inertia(state, *inertias: SpatialInertia) -> SpatialInertia:
    return sum(inertias[1:], inertias[0])


class MechanismStateCache:
    """Per-mechanism cache of frame transforms, twists, motion subspaces and inertias.

    All quantities are expressed in the root frame unless stated otherwise.
    The cache is wired once from the mechanism topology; the state it reads
    is passed explicitly to every accessor.
    """

    def __init__(self, mechanism: Mechanism):
        mechanism._freeze()
        root = mechanism.root_body
        self.root_frame = root.frame
        self._mutable_elements: List[MutableCacheElement] = []
        self._transforms_to_parent: Dict[CartesianFrame3D, CacheElement[Transform3D]] = {}
        self._transforms_to_root: Dict[CartesianFrame3D, CacheElement[Transform3D]] = {
            root.frame: ImmutableCacheElement(Transform3D.identity(root.frame)),
        }
        self._twists_wrt_world: Dict[RigidBody, CacheElement[Twist]] = {
            root: ImmutableCacheElement(Twist.zero(root.frame, root.frame, root.frame)),
        }
        self._motion_subspaces: Dict[Joint, MutableCacheElement[GeometricJacobian]] = {}
        self._spatial_inertias: Dict[RigidBody, MutableCacheElement[SpatialInertia]] = {}
        self._crb_inertias: Dict[RigidBody, MutableCacheElement[SpatialInertia]] = {}

        for body in mechanism.bodies():
            if not mechanism.is_root(body):
                joint = mechanism.joint_to_parent(body)
                parent = mechanism.parent(body)

                self._add_fixed_frame(mechanism.joint_to_predecessor(joint))
                joint_transform = self._mutable(partial(_joint_transform, joint))
                self._add_frame(joint.frame_after, joint.frame_before, joint_transform)

                after_to_root = self._transforms_to_root[joint.frame_after]
                self._twists_wrt_world[body] = self._mutable(
                    partial(_twist_wrt_world, joint, body, parent),
                    self._twists_wrt_world[parent], after_to_root,
                )
                self._motion_subspaces[joint] = self._mutable(
                    partial(_motion_subspace, joint), after_to_root
                )

            for transform in mechanism.body_fixed_frame_definitions(body):
                self._add_fixed_frame(transform)

            if not mechanism.is_root(body):
                inertia = self._mutable(
                    partial(_spatial_inertia, body), self._transforms_to_root[body.inertia.frame]
                )
                self._spatial_inertias[body] = inertia
                parent = mechanism.parent(body)
                if mechanism.is_root(parent):
                    self._crb_inertias[body] = self._mutable(_crb_inertia, inertia)
                else:
                    self._crb_inertias[body] = self._mutable(_crb_inertia, self._crb_inertias[parent], inertia)

        logger.debug(
            "Built mechanism state cache: %d frames, %d mutable elements",
            len(self._transforms_to_root), len(self._mutable_elements),
        )

    def _mutable(self, update: Callable, *dependencies: CacheElement) -> MutableCacheElement:
        element = MutableCacheElement(update, dependencies)
        self._mutable_elements.append(element)
        return element

    def _add_frame(self, frame: CartesianFrame3D, parent_frame: CartesianFrame3D,
                   to_parent: CacheElement[Transform3D]) -> None:
        parent_to_root = self._transforms_to_root[parent_frame]
        self._transforms_to_parent[frame] = to_parent
        self._transforms_to_root[frame] = self._mutable(_compose, parent_to_root, to_parent)

    def _add_fixed_frame(self, transform: Transform3D) -> None:
        self._add_frame(transform.frame_from, transform.frame_to, ImmutableCacheElement(transform))

    @property
    def num_mutable_elements(self) -> int:
        return len(self._mutable_elements)

    def setdirty(self) -> None:
        """Mark every mutable element stale; nothing is recomputed here."""
        for element in self._mutable_elements:
            element.setdirty()

    def transform_to_parent(self, state: "MechanismState", frame: CartesianFrame3D) -> Transform3D:
        return self._transforms_to_parent[frame].get(state)

    def transform_to_root(self, state: "MechanismState", frame: CartesianFrame3D) -> Transform3D:
        return self._transforms_to_root[frame].get(state)

    def relative_transform(self, state: "MechanismState", from_frame: CartesianFrame3D,
                           to_frame: CartesianFrame3D) -> Transform3D:
        """Transform from ``from_frame`` to ``to_frame``."""
        return self.transform_to_root(state, to_frame).inverse() @ self.transform_to_root(state, from_frame)

    def twist_wrt_world(self, state: "MechanismState", body: RigidBody) -> Twist:
        return self._twists_wrt_world[body].get(state)

    def relative_twist(self, state: "MechanismState", body: RigidBody, base: RigidBody) -> Twist:
        """Twist of ``body`` with respect to ``base``."""
        return -self.twist_wrt_world(state, base) + self.twist_wrt_world(state, body)

    def motion_subspace(self, state: "MechanismState", joint: Joint) -> GeometricJacobian:
        return self._motion_subspaces[joint].get(state)

    def spatial_inertia(self, state: "MechanismState", body: RigidBody) -> SpatialInertia:
        return self._spatial_inertias[body].get(state)

    def crb_inertia(self, state: "MechanismState", body: RigidBody) -> SpatialInertia:
        return self._crb_inertias[body].get(state)
