from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("BoundingBox width/height must be >= 0")

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


@dataclass(frozen=True)
class PointerTransform:
    """Maps surface pointer coordinates into chart pixels.

    ``origin`` is the chart's top-left corner on the surface and ``scale`` the
    rendered-to-logical pixel ratio per axis (2.0 on a surface drawn at twice
    the chart's logical size).
    """

    origin: tuple[float, float] = (0.0, 0.0)
    scale: tuple[float, float] = (1.0, 1.0)

    def __post_init__(self) -> None:
        if isinstance(self.scale, (int, float)):
            object.__setattr__(self, "scale", (float(self.scale), float(self.scale)))
        sx, sy = self.scale
        if sx <= 0 or sy <= 0:
            raise ValueError("pointer scale must be > 0")

    def to_chart(self, point: tuple[float, float]) -> tuple[float, float]:
        px, py = point
        ox, oy = self.origin
        sx, sy = self.scale
        return (float(round((px - ox) / sx)), float(round((py - oy) / sy)))

    def to_surface(self, point: tuple[float, float]) -> tuple[float, float]:
        cx, cy = point
        ox, oy = self.origin
        sx, sy = self.scale
        return (ox + cx * sx, oy + cy * sy)


IDENTITY_TRANSFORM = PointerTransform()
