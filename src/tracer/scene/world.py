"""The renderable world: shapes behind a BVH, lights, background, camera, sun.

A scenario constructor produces a WorldInfo. ``build_world`` builds the BVH
once; afterwards the World is only read while tiles render. Entity edits go
through ``set_entity_field`` and ``set_camera_field``, which callers must
serialize against rendering (the worker pool does this with its scene lock).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.tracer.camera.pinhole import Camera
from src.tracer.core.ray import Ray
from src.tracer.geometry.bvh import BvhTree, EntityInfo
from src.tracer.geometry.hittable import HitRecord, Hittable
from src.tracer.scene.background import Background
from src.tracer.scene.sun import Sun

logger = logging.getLogger(__name__)


@dataclass
class WorldInfo:
    """Plain scene description returned by scenario constructors.

    Attributes:
        objects: Every shape in the scene, lights included.
        lights: Shapes sampled for direct lighting. Each must support
            ``prob`` and ``generate_ray_in_area``.
        background: Radiance for rays that escape.
        camera: The camera.
        sun: Optional sun, sampled by SkyPdf.
    """

    objects: list[Hittable]
    lights: list[Hittable]
    background: Background
    camera: Camera
    sun: Sun | None = None

    def build_world(self) -> World:
        config = self.camera.config
        bvh = BvhTree(self.objects, config.start_time, config.end_time)
        logger.debug("built world with %d objects and %d lights", len(self.objects), len(self.lights))
        return World(bvh, list(self.lights), self.background, self.camera, self.sun)


@dataclass
class EntityCollection:
    """Editable view of a world: camera fields plus one entry per entity."""

    camera: dict[str, Any]
    entities: list[EntityInfo] = field(default_factory=list)


class World:
    """A built scene ready for rendering."""

    def __init__(
        self,
        bvh: BvhTree,
        lights: list[Hittable],
        background: Background,
        camera: Camera,
        sun: Sun | None = None,
    ) -> None:
        self.bvh = bvh
        self.lights = lights
        self.background = background
        self.camera = camera
        self.sun = sun

    def nearest_hit(self, ray: Ray, t_min: float, t_max: float) -> HitRecord | None:
        return self.bvh.hit(ray, t_min, t_max)

    def nearest_light_hit(self, ray: Ray, t_min: float, t_max: float) -> tuple[Hittable, HitRecord] | None:
        """Closest light along ``ray`` and its hit, ignoring other shapes."""
        best = None
        for light in self.lights:
            record = light.hit(ray, t_min, t_max)
            if record is not None and (best is None or record.t < best[1].t):
                best = (light, record)
        return best

    def entity_info(self) -> EntityCollection:
        return EntityCollection(self.camera.fields(), self.bvh.entity_info())

    def set_camera_field(self, key: str, value: Any) -> None:
        self.camera.set_field(key, value)

    def set_entity_field(self, index: int, key: str, value: Any) -> None:
        self.bvh.update_entity(index, key, value)

    def __repr__(self) -> str:
        return f"World(objects={len(self.bvh)}, lights={len(self.lights)}, background={self.background!r})"
