"""
Ground projection for waypoint placement.

The editor does not sample terrain itself. It consumes a GroundProjector
that maps a candidate point onto the surface beneath it, or reports a miss.
A miss is never an error: callers keep the unprojected point.
"""

import logging
from typing import Callable, Optional, Protocol, Tuple, runtime_checkable

from waypoint_editor.geometry import DOWN, UP, Vec3, add, as_vec3, scale

logger = logging.getLogger(__name__)

# Downward probe: start 100 units above the candidate and search 200 units down.
DEFAULT_PROBE_HEIGHT = 100.0
DEFAULT_PROBE_LENGTH = 200.0

RaycastFn = Callable[[Vec3, Vec3, float], Optional[Vec3]]


@runtime_checkable
class GroundProjector(Protocol):
    """Maps a point to the first surface below it, or None when nothing is in range."""

    def project(self, point: Vec3) -> Optional[Vec3]:
        ...


class RaycastGroundProjector:
    """
    Projector backed by a host raycast(origin, direction, max_distance) -> hit point.

    The probe starts probe_height above the candidate and runs probe_length
    downwards, so slightly buried candidates still find the surface.
    """

    def __init__(self, raycast: RaycastFn,
                 probe_height: float = DEFAULT_PROBE_HEIGHT,
                 probe_length: float = DEFAULT_PROBE_LENGTH):
        self.raycast = raycast
        self.probe_height = probe_height
        self.probe_length = probe_length

    def project(self, point: Vec3) -> Optional[Vec3]:
        origin = add(as_vec3(point), scale(UP, self.probe_height))
        hit = self.raycast(origin, DOWN, self.probe_length)
        return as_vec3(hit) if hit is not None else None


class PlaneGroundProjector:
    """
    Flat ground at a fixed height, optionally limited to an x/z rectangle.

    bounds = (min_x, min_z, max_x, max_z); points outside miss.
    """

    def __init__(self, height: float = 0.0,
                 bounds: Optional[Tuple[float, float, float, float]] = None,
                 probe_height: float = DEFAULT_PROBE_HEIGHT,
                 probe_length: float = DEFAULT_PROBE_LENGTH):
        self.height = height
        self.bounds = bounds
        self.probe_height = probe_height
        self.probe_length = probe_length

    def project(self, point: Vec3) -> Optional[Vec3]:
        x, y, z = as_vec3(point)
        if self.bounds is not None:
            min_x, min_z, max_x, max_z = self.bounds
            if not (min_x <= x <= max_x and min_z <= z <= max_z):
                return None
        top = y + self.probe_height
        if not (top - self.probe_length <= self.height <= top):
            return None
        return (x, self.height, z)


def project_or_keep(projector: Optional[GroundProjector], point: Vec3) -> Vec3:
    """Project point onto the ground; on a miss (or no projector) return it unchanged."""
    point = as_vec3(point)
    if projector is None:
        return point
    hit = projector.project(point)
    if hit is None:
        logger.debug(f"No ground below {point}, keeping unprojected position")
        return point
    return as_vec3(hit)
