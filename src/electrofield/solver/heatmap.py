"""
Heatmap Rasterizer
==================
Samples the field solver over the fixed grid and turns the Sample Grid into
an RGBA raster plus a coarse field-vector glyph set.

Clip rule:
    auto-scale on  -> clip = largest magnitude observed in this pass
    auto-scale off -> clip = the user's range, exactly as given
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

from electrofield.config import (
    AUTO_SCALE_FALLBACK,
    COOL_RAMP,
    GLYPH_SPACING_PX,
    GRID_NX,
    GRID_NY,
    PIXELS_PER_METER,
    WARM_RAMP,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from electrofield.model.charges import HeatQuantity
from electrofield.solver.field import field_at_points, grid_axes, sample_grid

if TYPE_CHECKING:
    import numpy.typing as npt

    from electrofield.model.charges import Charge, DisplaySettings, SceneSnapshot

logger = logging.getLogger(__name__)

Ramp = Sequence[tuple[float, tuple[int, int, int]]]


def build_lut(ramp: Ramp, n: int = 256) -> npt.NDArray[np.uint8]:
    """
    Interpolate color stops into an (n, 3) lookup table.

    Args:
        ramp: (position, (r, g, b)) stops, positions increasing from 0 to 1.
        n: Number of table entries.

    Raises:
        ValueError: If the stop positions are not increasing.
    """
    positions = np.array([p for p, _ in ramp], dtype=np.float64)
    colors = np.array([c for _, c in ramp], dtype=np.float64)
    if positions.size < 2 or np.any(np.diff(positions) <= 0):
        raise ValueError("Ramp stops must be at least two strictly increasing positions.")

    t = np.linspace(0.0, 1.0, n)
    lut = np.empty((n, 3), dtype=np.float64)
    for channel in range(3):
        lut[:, channel] = np.interp(t, positions, colors[:, channel])
    return np.clip(np.rint(lut), 0, 255).astype(np.uint8)


@dataclass(frozen=True)
class Palette:
    """Warm ramp for positive values, cool ramp for negative ones."""
    warm: npt.NDArray[np.uint8]
    cool: npt.NDArray[np.uint8]

    @classmethod
    def default(cls) -> Palette:
        return cls(warm=build_lut(WARM_RAMP), cool=build_lut(COOL_RAMP))

    def colorize(self, values: npt.NDArray[np.float64], clip: float) -> npt.NDArray[np.uint8]:
        """
        Map signed values to RGBA using t = clamp(|v| / clip, 0, 1).

        Returns:
            (..., 4) uint8 array, fully opaque.
        """
        if not clip > 0.0:
            raise ValueError(f"Clip value must be positive, got {clip}.")
        t = np.clip(np.abs(values) / clip, 0.0, 1.0)
        index = np.rint(t * (len(self.warm) - 1)).astype(np.intp)

        rgba = np.empty(values.shape + (4,), dtype=np.uint8)
        rgba[..., :3] = np.where((values >= 0.0)[..., None], self.warm[index], self.cool[index])
        rgba[..., 3] = 255
        return rgba


@dataclass(frozen=True)
class HeatmapFrame:
    grid: npt.NDArray[np.float64]  # (ny, nx) Sample Grid
    rgba: npt.NDArray[np.uint8]  # (ny, nx, 4)
    clip: float
    amplitude: float  # largest |value| seen in this pass
    quantity: HeatQuantity


@dataclass(frozen=True)
class GlyphField:
    positions: npt.NDArray[np.float64]  # (N, 2) world coordinates
    directions: npt.NDArray[np.float64]  # (N, 2) unit vectors, zero where E vanishes
    strength: npt.NDArray[np.float64]  # (N,) in [0, 1]

    @classmethod
    def empty(cls) -> GlyphField:
        return cls(np.empty((0, 2)), np.empty((0, 2)), np.empty(0))


def resolve_clip(settings: DisplaySettings, amplitude: float) -> float:
    """
    Clip value for a pass.

    Manual mode returns settings.range_v untouched; the observed amplitude
    never caps it.
    """
    if settings.auto_scale:
        return amplitude if amplitude > 0.0 else AUTO_SCALE_FALLBACK
    return settings.range_v


class HeatmapRasterizer:
    def __init__(
        self,
        nx: int = GRID_NX,
        ny: int = GRID_NY,
        width: float = WORLD_WIDTH,
        height: float = WORLD_HEIGHT,
        palette: Palette | None = None,
    ) -> None:
        self.nx = nx
        self.ny = ny
        self.width = width
        self.height = height
        self.palette = palette if palette is not None else Palette.default()

    def rasterize(self, snapshot: SceneSnapshot) -> HeatmapFrame:
        settings = snapshot.settings
        potential, ex, ey = sample_grid(snapshot.charges, self.nx, self.ny, self.width, self.height)

        if settings.quantity == HeatQuantity.FIELD:
            grid = np.hypot(ex, ey)
        else:
            grid = potential

        amplitude = float(np.max(np.abs(grid))) if grid.size else 0.0
        clip = resolve_clip(settings, amplitude)
        rgba = self.palette.colorize(grid, clip)

        logger.debug(
            f"Rasterized {self.nx}x{self.ny} grid ({len(snapshot.charges)} charges), "
            f"amplitude={amplitude:.4g}, clip={clip:.4g}."
        )
        return HeatmapFrame(grid=grid, rgba=rgba, clip=clip, amplitude=amplitude, quantity=settings.quantity)


def compute_glyphs(
    charges: Sequence[Charge],
    width: float = WORLD_WIDTH,
    height: float = WORLD_HEIGHT,
    spacing_px: float = GLYPH_SPACING_PX,
    pixels_per_meter: float = PIXELS_PER_METER,
) -> GlyphField:
    """
    Coarse arrow grid of field directions.

    Strength is the cube root of |E| normalized to the strongest glyph so
    that weak regions still show visible arrows.
    """
    if not charges:
        return GlyphField.empty()

    spacing = spacing_px / pixels_per_meter
    nx = max(1, int(width / spacing))
    ny = max(1, int(height / spacing))
    xs, ys = grid_axes(nx, ny, width, height)
    gx, gy = np.meshgrid(xs, ys)
    _, ex, ey = field_at_points(charges, gx.ravel(), gy.ravel())

    magnitude = np.hypot(ex, ey)
    directions = np.zeros((magnitude.size, 2))
    nonzero = magnitude > 0.0
    directions[nonzero, 0] = ex[nonzero] / magnitude[nonzero]
    directions[nonzero, 1] = ey[nonzero] / magnitude[nonzero]

    scaled = np.cbrt(magnitude)
    peak = scaled.max()
    strength = scaled / peak if peak > 0.0 else np.zeros_like(scaled)

    return GlyphField(
        positions=np.column_stack((gx.ravel(), gy.ravel())),
        directions=directions,
        strength=strength,
    )


def probe_profile(
    charges: Sequence[Charge],
    start: tuple[float, float],
    end: tuple[float, float],
    samples: int = 200,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Potential along a straight segment.

    Returns:
        (distance from start [m], potential [V]), each of shape (samples,).
    """
    if samples < 2:
        raise ValueError(f"Need at least two samples, got {samples}.")
    t = np.linspace(0.0, 1.0, samples)
    xs = start[0] + t * (end[0] - start[0])
    ys = start[1] + t * (end[1] - start[1])
    potential, _, _ = field_at_points(charges, xs, ys)
    length = float(np.hypot(end[0] - start[0], end[1] - start[1]))
    return t * length, potential
