"""Leaf payloads used when an octree is rendered.

Payloads are frozen dataclasses so equal voxels compare equal, which is
what lets neighbouring leaves collapse during simplification. Colors are
plain float tuples for the same reason.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.tracer.materials.base import Material

Color = tuple[float, float, float]


class SolidKind(IntEnum):
    LAMBERTIAN = 0
    REFLECT = 1


@dataclass(frozen=True)
class SolidVoxel:
    """An opaque voxel.

    Attributes:
        albedo: Surface color.
        kind: Diffuse or mirror-like surface.
        fuzz: Roughness of a reflective surface in [0, 1].
    """

    albedo: Color
    kind: SolidKind = SolidKind.LAMBERTIAN
    fuzz: float = 0.0

    @classmethod
    def lambertian(cls, albedo) -> SolidVoxel:
        return cls(tuple(float(c) for c in albedo))

    @classmethod
    def reflect(cls, albedo, fuzz: float = 0.0) -> SolidVoxel:
        return cls(tuple(float(c) for c in albedo), SolidKind.REFLECT, float(fuzz))


@dataclass(frozen=True)
class SolidEdge:
    """Chance that a ray entering a volume bounces off its skin instead."""

    hit_probability: float
    solid: SolidVoxel

    def __post_init__(self) -> None:
        if not 0.0 <= self.hit_probability <= 1.0:
            raise ValueError(f"hit_probability must be in [0, 1], got {self.hit_probability}")


@dataclass(frozen=True)
class VolumeVoxel:
    """A voxel filled with a homogeneous participating medium."""

    density: float
    color: Color
    edge_effect: SolidEdge | None = None

    def __post_init__(self) -> None:
        if self.density <= 0.0:
            raise ValueError(f"density must be positive, got {self.density}")

    @classmethod
    def new(cls, density: float, color, edge_effect: SolidEdge | None = None) -> VolumeVoxel:
        return cls(float(density), tuple(float(c) for c in color), edge_effect)


@functools.lru_cache(maxsize=1024)
def material_for(voxel: SolidVoxel | VolumeVoxel) -> Material:
    """Shared material instance for a voxel payload."""
    from src.tracer.materials import Isotropic, Lambertian, Metal

    if isinstance(voxel, VolumeVoxel):
        return Isotropic(voxel.color)
    if voxel.kind == SolidKind.REFLECT:
        return Metal(voxel.albedo, voxel.fuzz)
    return Lambertian(voxel.albedo)
