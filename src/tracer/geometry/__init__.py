"""Geometry module for shapes and spatial acceleration.

Components:
    hittable: Hit records and the shape contract
    sphere: Static and moving spheres
    rect: Axis-aligned rectangles and boxes
    transform: Affine transform wrapper for any shape
    constant_medium: Constant-density participating media
    voxel_world: Dense voxel grid with DDA traversal
    octree: Sparse voxel octree and its scene adapter
    bvh: Bounding volume hierarchy over a flat object list

Every shape answers hit, bounding_box, prob and generate_ray_in_area.
Shapes that cannot be sampled raise NotImplementedError from the last two
and must be kept out of a world's light list.
"""

from .hittable import EffectKind, HitRecord, Hittable, MaterialEffect, RayAreaInfo
from .bvh import BvhTree, EntityInfo
from .constant_medium import ConstantMedium
from .octree import Octree, OctreeShape, SolidEdge, SolidVoxel, VolumeVoxel
from .rect import RenderBox, XYRect, XZRect, YZRect
from .sphere import MovingSphere, Sphere
from .transform import Object, Transform
from .voxel_world import VoxelWorld

__all__ = [
    "BvhTree",
    "ConstantMedium",
    "EffectKind",
    "EntityInfo",
    "HitRecord",
    "Hittable",
    "MaterialEffect",
    "MovingSphere",
    "Object",
    "Octree",
    "OctreeShape",
    "RayAreaInfo",
    "RenderBox",
    "SolidEdge",
    "SolidVoxel",
    "Sphere",
    "Transform",
    "VolumeVoxel",
    "VoxelWorld",
    "XYRect",
    "XZRect",
    "YZRect",
]
