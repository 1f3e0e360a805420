"""Coordinate frame labels."""

import itertools
from typing import Optional

_frame_ids = itertools.count()


class CartesianFrame3D:
    """A named 3D coordinate system.

    Frames compare by identity: two frames with the same name are still
    distinct. The name is only used for printing.
    """

    __slots__ = ("name", "id")

    def __init__(self, name: Optional[str] = None):
        self.id = next(_frame_ids)
        self.name = name if name is not None else f"anonymous_{self.id}"

    def __repr__(self) -> str:
        return f"CartesianFrame3D({self.name!r})"

    def __str__(self) -> str:
        return self.name


def check_frames(expected: CartesianFrame3D, actual: CartesianFrame3D) -> None:
    """Raise ValueError unless two frame labels are the same frame."""
    if expected is not actual:
        raise ValueError(f"Frame mismatch: expected {expected}, got {actual}")
