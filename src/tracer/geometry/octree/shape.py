"""Hittable adapter that places a voxel octree in a scene.

Voxel ``(i, j, k)`` occupies the world cube ``origin + scale * [i, i+1)``
and so on per axis. Solid leaves are opaque surfaces. Volume leaves scatter
after an exponential free-flight distance; a ray that enters a volume from
outside may instead bounce off the volume's skin when the voxel carries a
SolidEdge.
"""

from __future__ import annotations

import logging
import math

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray, as_vec3, length
from src.tracer.core.sampling import get_rng
from src.tracer.geometry.hittable import UNIT_X, HitRecord, Hittable
from src.tracer.geometry.octree.node import is_solid
from src.tracer.geometry.octree.ray_trace import OctreeHit, face_normal, trace_ray
from src.tracer.geometry.octree.tree import Octree
from src.tracer.geometry.octree.voxel import VolumeVoxel, material_for

logger = logging.getLogger(__name__)


class _VolumeVisitor:
    """Leaf visitor that resolves solid and volume voxels along one ray."""

    def __init__(self, ray: Ray) -> None:
        self.ray = ray
        self.direction = [float(c) for c in ray.direction]
        self.speed = length(ray.direction)
        self.volume_exit = -math.inf

    def __call__(self, value, t_enter: float, t_exit: float, axis: int) -> OctreeHit | None:
        if not is_solid(value):
            return None
        if not isinstance(value, VolumeVoxel):
            return OctreeHit(value, t_enter, self.ray.at(t_enter), face_normal(self.direction, axis))
        entering = not math.isclose(t_enter, self.volume_exit, rel_tol=1e-9, abs_tol=1e-9)
        self.volume_exit = t_exit
        rng = get_rng()
        edge = value.edge_effect
        if entering and edge is not None and rng.random() < edge.hit_probability:
            return OctreeHit(edge.solid, t_enter, self.ray.at(t_enter), face_normal(self.direction, axis))
        distance = -math.log(1.0 - float(rng.random())) / value.density
        t = t_enter + distance / self.speed
        if t >= t_exit:
            return None
        return OctreeHit(value, t, self.ray.at(t), UNIT_X.copy())


class OctreeShape(Hittable):
    """An octree of SolidVoxel / VolumeVoxel payloads placed in the world.

    Attributes:
        tree: The voxel octree.
        origin: World position of voxel (0, 0, 0)'s minimum corner.
        scale: World size of one voxel.
    """

    name = "Octree"

    def __init__(self, tree: Octree, origin=(0.0, 0.0, 0.0), scale: float = 1.0) -> None:
        if scale <= 0.0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.tree = tree
        self.origin = as_vec3(origin)
        self.scale = float(scale)

    def _to_local(self, ray: Ray) -> Ray:
        return Ray((ray.origin - self.origin) / self.scale, ray.direction / self.scale, ray.time)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        if length(ray.direction) == 0.0:
            return None
        local = self._to_local(ray)
        found = trace_ray(self.tree, local, t_min, t_max, _VolumeVisitor(local))
        if found is None:
            return None
        # solid normals already face the ray, so they serve as outward normals
        record = HitRecord.new(ray, ray.at(found.t), found.normal, found.t, (0.0, 0.0), material_for(found.value))
        if isinstance(found.value, VolumeVoxel):
            record.front_face = True
        return record

    def bounding_box(self, time0: float, time1: float) -> AABB:
        extent = self.scale * self.tree.size
        return AABB(self.origin.copy(), self.origin + extent)

    def fields(self) -> dict:
        return {"origin": self.origin.copy(), "scale": self.scale}

    def set_field(self, key: str, value) -> None:
        if key == "origin":
            self.origin = as_vec3(value)
        elif key == "scale":
            if value <= 0.0:
                raise ValueError(f"scale must be positive, got {value}")
            self.scale = float(value)
        else:
            super().set_field(key, value)

    def __repr__(self) -> str:
        return f"OctreeShape(size={self.tree.size}, origin={tuple(self.origin)}, scale={self.scale})"
