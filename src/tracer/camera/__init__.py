"""Camera module for primary ray generation.

Components:
    pinhole: Look-at camera with thin lens and shutter interval

Ray generation uses normalized image coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image
"""

from .pinhole import Camera, PinholeCamera

__all__ = ["Camera", "PinholeCamera"]
