"""Material interface.

A material answers exactly two questions about a hit: what it emits and how
the ray scatters. ``effect`` folds both answers into the MaterialEffect that
HitRecord stores.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.tracer.core.ray import Ray, Vec3
from src.tracer.geometry.hittable import MaterialEffect

if TYPE_CHECKING:
    from src.tracer.core.pdf import ScatterRecord
    from src.tracer.geometry.hittable import HitRecord


class Material:
    """Base material: emits nothing and absorbs everything."""

    name = "Material"

    def emit(self, ray: Ray, hit: HitRecord) -> Vec3 | None:
        """Emitted radiance at the hit, or None for non-emitters."""
        return None

    def scatter(self, ray: Ray, hit: HitRecord) -> ScatterRecord | None:
        """Scatter response at the hit, or None if the ray is absorbed."""
        return None

    def effect(self, ray: Ray, hit: HitRecord) -> MaterialEffect:
        emitted = self.emit(ray, hit)
        if emitted is not None:
            return MaterialEffect.emit(emitted)
        record = self.scatter(ray, hit)
        if record is not None:
            return MaterialEffect.scattered(record)
        return MaterialEffect.no_effect()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
