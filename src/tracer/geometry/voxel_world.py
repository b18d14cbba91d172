"""Dense voxel grid traversed with a 3-D DDA.

The grid stores one small integer per cell: 0 is empty, any other value
indexes the material table. Rays step from cell to cell in the order they
cross cell faces, so the first occupied cell found is the nearest one.

Example:
    >>> from src.tracer.geometry.voxel_world import VoxelWorld
    >>> from src.tracer.materials import Lambertian
    >>> world = VoxelWorld({1: Lambertian((0.8, 0.3, 0.3))}, size=(16, 16, 16))
    >>> world.set_voxel((2, 0, 3), 1)
"""

from __future__ import annotations

import logging
import math

import numpy as np

from src.tracer.core.aabb import AABB
from src.tracer.core.ray import Ray, as_vec3, vec3
from src.tracer.geometry.hittable import HitRecord, Hittable

logger = logging.getLogger(__name__)

EMPTY = 0


class VoxelWorld(Hittable):
    """A dense grid of material indices placed at ``origin``.

    Attributes:
        materials: Table from material index to Material.
        grid: Integer array of shape ``size``.
        origin: World position of the grid's minimum corner.
        scale: World size of one cell.
    """

    name = "Voxel World"

    def __init__(self, materials: dict, size=(16, 16, 16), origin=(0.0, 0.0, 0.0), scale: float = 1.0) -> None:
        dims = tuple(int(s) for s in size)
        if len(dims) != 3 or min(dims) <= 0:
            raise ValueError(f"grid size must be three positive integers, got {size}")
        if scale <= 0.0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.materials = dict(materials)
        self.grid = np.zeros(dims, dtype=np.int32)
        self.origin = as_vec3(origin)
        self.scale = float(scale)

    def material(self, index: int):
        """Material for a grid value.

        Raises:
            KeyError: If the index has no material.
        """
        try:
            return self.materials[index]
        except KeyError:
            raise KeyError(f"voxel material {index} is not defined") from None

    def set_voxel(self, position, index: int) -> None:
        x, y, z = (int(c) for c in position)
        if not (0 <= x < self.grid.shape[0] and 0 <= y < self.grid.shape[1] and 0 <= z < self.grid.shape[2]):
            raise ValueError(f"voxel {(x, y, z)} outside grid of size {self.grid.shape}")
        self.grid[x, y, z] = index

    def get_voxel(self, position) -> int:
        x, y, z = (int(c) for c in position)
        return int(self.grid[x, y, z])

    def fill(self, lo, hi, index: int) -> None:
        """Set every cell in the half-open box [lo, hi)."""
        self.grid[lo[0]:hi[0], lo[1]:hi[1], lo[2]:hi[2]] = index

    def occupied_count(self) -> int:
        return int(np.count_nonzero(self.grid))

    def bounding_box(self, time0: float, time1: float) -> AABB:
        extent = self.scale * np.asarray(self.grid.shape, dtype=np.float64)
        return AABB(self.origin.copy(), self.origin + extent)

    def hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        origin = (ray.origin - self.origin) / self.scale
        direction = ray.direction / self.scale
        dims = self.grid.shape

        # clip the ray against the grid
        t_enter, t_exit, axis = max(t_min, 0.0), t_max, -1
        for i in range(3):
            d = float(direction[i])
            if d == 0.0:
                if origin[i] < 0.0 or origin[i] > dims[i]:
                    return None
                continue
            near = (0.0 - origin[i]) / d
            far = (dims[i] - origin[i]) / d
            if near > far:
                near, far = far, near
            if near > t_enter:
                t_enter, axis = near, i
            t_exit = min(t_exit, far)
        if t_enter >= t_exit:
            return None

        start = origin + t_enter * direction
        cell = [min(max(int(math.floor(start[i])), 0), dims[i] - 1) for i in range(3)]
        step = [0, 0, 0]
        t_next = [math.inf] * 3
        t_delta = [math.inf] * 3
        for i in range(3):
            d = float(direction[i])
            if d > 0.0:
                step[i] = 1
                t_next[i] = (cell[i] + 1 - origin[i]) / d
                t_delta[i] = 1.0 / d
            elif d < 0.0:
                step[i] = -1
                t_next[i] = (cell[i] - origin[i]) / d
                t_delta[i] = -1.0 / d

        t = t_enter
        while t < t_exit:
            index = int(self.grid[cell[0], cell[1], cell[2]])
            if index != EMPTY:
                return self._record(ray, t, axis, index)
            axis = min(range(3), key=lambda i: t_next[i])
            t = t_next[axis]
            cell[axis] += step[axis]
            if not 0 <= cell[axis] < dims[axis]:
                return None
            t_next[axis] += t_delta[axis]
        return None

    def _record(self, ray: Ray, t: float, axis: int, index: int) -> HitRecord:
        if axis < 0:
            axis = int(np.argmax(np.abs(ray.direction)))
        normal = vec3()
        normal[axis] = -1.0 if ray.direction[axis] > 0.0 else 1.0
        return HitRecord.new(ray, ray.at(t), normal, t, (0.0, 0.0), self.material(index))

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
