"""Monte Carlo path tracer with voxel octrees.

Features:
- Path tracing with multiple importance sampling of lights and the sun
- Sparse voxel octrees with solid and participating-medium voxels
- BVH acceleration over spheres, rectangles, boxes and transformed shapes
- Progressive accumulation from tile worker threads into Taichi buffers

Subpackages:
    core: Rays, sampling, densities, the integrator and the render workers
    geometry: Shapes, the BVH, octrees and voxel grids
    materials: Scattering models and textures
    scene: Worlds, backgrounds, the sun and named scenarios
    camera: Thin-lens pinhole camera
    preview: Display and export of rendered images
"""

__version__ = "0.1.0"
