"""Scene module: worlds, backgrounds, the sun and scenario constructors.

Components:
    world: WorldInfo scene descriptions and built Worlds
    background: Constant, gradient sky and sun-and-sky backgrounds
    sun: Directional sun disc
    scenarios: Named scenario registry and built-in scenes
"""

from .background import Background, ConstantColor, Sky, SunSky
from .scenarios import DEFAULT_SCENARIO, ScenarioRegistry, default_registry
from .sun import Sun
from .world import EntityCollection, World, WorldInfo

__all__ = [
    "Background",
    "ConstantColor",
    "DEFAULT_SCENARIO",
    "EntityCollection",
    "ScenarioRegistry",
    "Sky",
    "Sun",
    "SunSky",
    "World",
    "WorldInfo",
    "default_registry",
]
