"""Named scenario constructors.

A scenario is a zero-argument callable returning a WorldInfo. The registry
maps display names to constructors and builds worlds on request; unknown
names fall back to the default scenario with a warning.

Example:
    >>> from src.tracer.scene.scenarios import default_registry
    >>> registry = default_registry()
    >>> world = registry.build("Cornell Box")
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

from src.tracer.camera.pinhole import Camera, PinholeCamera
from src.tracer.geometry.constant_medium import ConstantMedium
from src.tracer.geometry.octree import Octree, OctreeShape, SolidEdge, SolidVoxel, VolumeVoxel
from src.tracer.geometry.octree import shapes as octree_shapes
from src.tracer.geometry.rect import RenderBox, XYRect, XZRect, YZRect
from src.tracer.geometry.sphere import Sphere
from src.tracer.geometry.transform import Object, Transform
from src.tracer.materials import Dielectric, DiffuseLight, Isotropic, Lambertian, Metal
from src.tracer.scene.background import ConstantColor, Sky, SunSky
from src.tracer.scene.sun import Sun
from src.tracer.scene.world import World, WorldInfo

logger = logging.getLogger(__name__)

ScenarioFn = Callable[[], WorldInfo]

DEFAULT_SCENARIO = "One Sphere"

# =============================================================================
# Cornell Box Constants
# =============================================================================

BOX_SIZE = 555.0
RED_WALL_ALBEDO = (0.65, 0.05, 0.05)
GREEN_WALL_ALBEDO = (0.12, 0.45, 0.15)
WHITE_WALL_ALBEDO = (0.73, 0.73, 0.73)


class ScenarioRegistry:
    """Mapping from scenario name to constructor."""

    def __init__(self, default: str = DEFAULT_SCENARIO) -> None:
        self.default = default
        self._items: dict[str, ScenarioFn] = {}

    def register(self, name: str, constructor: ScenarioFn) -> None:
        if name in self._items:
            logger.warning("replacing scenario '%s'", name)
        self._items[name] = constructor

    def names(self) -> list[str]:
        return sorted(self._items)

    def __contains__(self, name: str) -> bool:
        return name in self._items

    def build_info(self, name: str) -> WorldInfo:
        """Scene description for ``name``, or for the default if unknown.

        Raises:
            KeyError: If neither ``name`` nor the default is registered.
        """
        constructor = self._items.get(name)
        if constructor is None:
            logger.warning("scenario '%s' not found, loading '%s'", name, self.default)
            if self.default not in self._items:
                raise KeyError(f"default scenario '{self.default}' is not registered")
            constructor = self._items[self.default]
        return constructor()

    def build(self, name: str) -> World:
        return self.build_info(name).build_world()


def _camera(lookfrom, lookat, vfov: float, aperture: float = 0.0, end_time: float = 0.0) -> Camera:
    distance = math.dist(lookfrom, lookat)
    return Camera(
        PinholeCamera(
            lookfrom=lookfrom,
            lookat=lookat,
            vup=(0.0, 1.0, 0.0),
            vfov=vfov,
            aspect_ratio=1.0,
            aperture=aperture,
            focus_distance=distance,
            end_time=end_time,
        )
    )


# =============================================================================
# Built-in scenarios
# =============================================================================


def one_sphere() -> WorldInfo:
    """Gray unit sphere lit by a small emissive sphere over a dark background."""
    light = Sphere((2.5, 2.5, 1.0), 0.5, DiffuseLight((15.0, 15.0, 15.0)))
    return WorldInfo(
        objects=[Sphere((0.0, 0.0, 0.0), 1.0, Lambertian((0.5, 0.5, 0.5))), light],
        lights=[light],
        background=ConstantColor((0.02, 0.02, 0.03)),
        camera=_camera((0.0, 0.0, 6.0), (0.0, 0.0, 0.0), 40.0),
    )


def two_spheres() -> WorldInfo:
    return WorldInfo(
        objects=[
            Sphere((0.0, 0.0, -1.0), 0.5, Lambertian((0.1, 0.2, 0.5))),
            Sphere((1.0, 0.0, -1.0), 0.5, Metal((0.8, 0.6, 0.2), 0.0)),
            Sphere((-1.0, 0.0, -1.0), 0.5, Dielectric(1.5)),
            Sphere((0.0, -100.5, -1.0), 100.0, Lambertian((0.8, 0.8, 0.0))),
        ],
        lights=[],
        background=Sky(),
        camera=_camera((3.0, 3.0, 2.0), (0.0, 0.0, -1.0), 20.0),
    )


def _cornell_walls() -> tuple[list, XZRect]:
    red = Lambertian(RED_WALL_ALBEDO)
    green = Lambertian(GREEN_WALL_ALBEDO)
    white = Lambertian(WHITE_WALL_ALBEDO)
    light = XZRect(213.0, 343.0, 227.0, 332.0, BOX_SIZE - 1.0, DiffuseLight((15.0, 15.0, 15.0)), flip_normal=True)
    walls = [
        YZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, green, flip_normal=True),
        YZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, 0.0, red),
        light,
        XZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, 0.0, white),
        XZRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, white, flip_normal=True),
        XYRect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, white, flip_normal=True),
    ]
    return walls, light


def _cornell_blocks(material) -> tuple[Object, Object]:
    tall = Object(
        RenderBox((0.0, 0.0, 0.0), (165.0, 330.0, 165.0), material),
        Transform.identity().rotate_y(15.0).translate((265.0, 0.0, 295.0)),
    )
    short = Object(
        RenderBox((0.0, 0.0, 0.0), (165.0, 165.0, 165.0), material),
        Transform.identity().rotate_y(-18.0).translate((130.0, 0.0, 65.0)),
    )
    return tall, short


def cornell_box() -> WorldInfo:
    walls, light = _cornell_walls()
    tall, short = _cornell_blocks(Lambertian(WHITE_WALL_ALBEDO))
    return WorldInfo(
        objects=walls + [tall, short],
        lights=[light],
        background=ConstantColor((0.0, 0.0, 0.0)),
        camera=_camera((278.0, 278.0, -800.0), (278.0, 278.0, 0.0), 40.0),
    )


def cornell_smoke() -> WorldInfo:
    walls, light = _cornell_walls()
    tall, short = _cornell_blocks(Lambertian(WHITE_WALL_ALBEDO))
    return WorldInfo(
        objects=walls
        + [
            ConstantMedium(tall, Isotropic((0.0, 0.0, 0.0)), 0.01),
            ConstantMedium(short, Isotropic((1.0, 1.0, 1.0)), 0.01),
        ],
        lights=[light],
        background=ConstantColor((0.0, 0.0, 0.0)),
        camera=_camera((278.0, 278.0, -800.0), (278.0, 278.0, 0.0), 40.0),
    )


def octree_cubes() -> WorldInfo:
    """Three voxel blocks merged into one tree under a sun."""
    floor = octree_shapes.rectangle((32, 1, 32), SolidVoxel.lambertian((0.6, 0.6, 0.6)))
    tower = octree_shapes.cube(6, SolidVoxel.lambertian((0.7, 0.2, 0.2)))
    mirror = octree_shapes.rectangle((8, 8, 2), SolidVoxel.reflect((0.9, 0.9, 0.9), 0.05))
    ball = octree_shapes.sphere(4, SolidVoxel.lambertian((0.2, 0.3, 0.8)))
    tree: Octree = floor.combine(tower, (6, 1, 6))
    tree = tree.combine(mirror, (18, 1, 20))
    tree = tree.combine(ball, (18, 1, 6))
    sun = Sun(phi=math.pi / 4.0, theta=math.pi / 3.0, radius=0.1)
    return WorldInfo(
        objects=[OctreeShape(tree, (-16.0, -1.0, -16.0))],
        lights=[],
        background=SunSky(sun, intensity=0.3, sun_brightness=20.0),
        camera=_camera((30.0, 25.0, 30.0), (0.0, 2.0, 0.0), 40.0),
        sun=sun,
    )


def octree_volume() -> WorldInfo:
    """A translucent voxel ball with a glossy skin resting on a solid slab."""
    slab = octree_shapes.rectangle((32, 2, 32), SolidVoxel.lambertian((0.5, 0.5, 0.5)))
    skin = SolidEdge(0.2, SolidVoxel.reflect((0.9, 0.9, 1.0), 0.1))
    ball = octree_shapes.sphere(8, VolumeVoxel.new(0.3, (0.8, 0.9, 0.95), skin))
    tree = slab.combine(ball, (8, 2, 8))
    sun = Sun()
    return WorldInfo(
        objects=[OctreeShape(tree, (-16.0, -2.0, -16.0))],
        lights=[],
        background=SunSky(sun, intensity=0.4, sun_brightness=15.0),
        camera=_camera((35.0, 28.0, 35.0), (0.0, 6.0, 0.0), 35.0),
        sun=sun,
    )


def empty_scene() -> WorldInfo:
    return WorldInfo(
        objects=[],
        lights=[],
        background=Sky(),
        camera=_camera((0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 90.0),
    )


BUILTIN_SCENARIOS: dict[str, ScenarioFn] = {
    "One Sphere": one_sphere,
    "Two Spheres": two_spheres,
    "Cornell Box": cornell_box,
    "Cornell Smoke": cornell_smoke,
    "Octree Cubes": octree_cubes,
    "Octree Volume": octree_volume,
    "Empty": empty_scene,
}


def default_registry() -> ScenarioRegistry:
    """Registry holding every built-in scenario."""
    registry = ScenarioRegistry()
    for name, constructor in BUILTIN_SCENARIOS.items():
        registry.register(name, constructor)
    return registry
