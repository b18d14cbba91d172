"""Sparse voxel octree.

Components:
    node: Octree nodes, child ordering and simplification
    tree: The Octree container with point get/set and growth
    combine: Spatial union of two trees
    shapes: Bulk constructors (cube, rectangle, sphere)
    ray_trace: Front-to-back ray traversal
    voxel: Solid and volume payloads used for rendering
    shape: Hittable adapter placing a tree in a scene
"""

from .node import OctreeNode, next_power_of_two
from .ray_trace import OctreeHit, trace_ray
from .shape import OctreeShape
from .shapes import cube, rectangle, sphere
from .tree import MAX_OCTREE_SIZE, Octree
from .voxel import SolidEdge, SolidKind, SolidVoxel, VolumeVoxel, material_for

__all__ = [
    "MAX_OCTREE_SIZE",
    "Octree",
    "OctreeHit",
    "OctreeNode",
    "OctreeShape",
    "SolidEdge",
    "SolidKind",
    "SolidVoxel",
    "VolumeVoxel",
    "cube",
    "material_for",
    "next_power_of_two",
    "rectangle",
    "sphere",
    "trace_ray",
]
