"""Geometric primitives for structural model coordinates."""

from __future__ import annotations

import math

from pydantic import BaseModel


class Point3D(BaseModel):
    """3D point (millimeters, ST-Bridge convention)."""

    x: float
    y: float
    z: float

    def distance_to(self, other: Point3D) -> float:
        """Euclidean distance to another point."""
        return math.sqrt(
            (self.x - other.x) ** 2
            + (self.y - other.y) ** 2
            + (self.z - other.z) ** 2
        )
