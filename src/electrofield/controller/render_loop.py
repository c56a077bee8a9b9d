"""
Render Loop
===========
One pass per display refresh.

Why is this file needed?
------------------------
1. Dirty tracking: The heatmap is rebuilt only when the scene's heat revision
   moved since the last pass; the flow pattern is reseeded only when the flow
   revision moved. Carriers advance on every pass.
2. One-way data flow: Each pass reads a single SceneSnapshot and emits an
   immutable RenderFrame. Nothing here writes to the Scene Model or to any
   input widget.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from electrofield.solver.heatmap import GlyphField, compute_glyphs

if TYPE_CHECKING:
    import numpy.typing as npt

    from electrofield.controller.interaction import InteractionController, Measurement
    from electrofield.model.charges import Charge, DisplaySettings
    from electrofield.model.state import SceneModel
    from electrofield.solver.flow import FlowIntegrator
    from electrofield.solver.heatmap import HeatmapFrame, HeatmapRasterizer

logger = logging.getLogger(__name__)

LAYER_ORDER: tuple[str, ...] = ("heatmap", "glyphs", "carriers", "charges", "overlays")


@dataclass(frozen=True)
class RenderFrame:
    heatmap: HeatmapFrame | None
    glyphs: GlyphField
    carriers: npt.NDArray[np.float64]  # (N, 2)
    charges: tuple[Charge, ...]
    selected_id: int | None
    measurement: Measurement | None
    settings: DisplaySettings
    heat_recomputed: bool


class RenderLoop:
    def __init__(
        self,
        scene: SceneModel,
        rasterizer: HeatmapRasterizer,
        integrator: FlowIntegrator,
        interaction: InteractionController | None = None,
    ) -> None:
        self.scene = scene
        self.rasterizer = rasterizer
        self.integrator = integrator
        self.interaction = interaction

        self._heat_revision: int | None = None
        self._flow_revision: int | None = None
        self._heatmap: HeatmapFrame | None = None
        self._glyphs = GlyphField.empty()
        self.frame_count = 0

    @property
    def heat_dirty(self) -> bool:
        return self._heat_revision != self.scene.snapshot().heat_revision

    def invalidate(self) -> None:
        """Force a heatmap recompute and a reseed on the next tick."""
        self._heat_revision = None
        self._flow_revision = None

    def tick(self) -> RenderFrame:
        snapshot = self.scene.snapshot()

        heat_recomputed = False
        if snapshot.heat_revision != self._heat_revision:
            self._heatmap = self.rasterizer.rasterize(snapshot)
            self._glyphs = compute_glyphs(
                snapshot.charges, width=self.rasterizer.width, height=self.rasterizer.height
            )
            self._heat_revision = snapshot.heat_revision
            heat_recomputed = True

        if snapshot.flow_revision != self._flow_revision:
            self.integrator.reseed(snapshot)
            self._flow_revision = snapshot.flow_revision

        self.integrator.step(snapshot)
        self.frame_count += 1

        return RenderFrame(
            heatmap=self._heatmap,
            glyphs=self._glyphs,
            carriers=self.integrator.positions,
            charges=snapshot.charges,
            selected_id=snapshot.selected_id,
            measurement=self.interaction.measurement if self.interaction is not None else None,
            settings=snapshot.settings,
            heat_recomputed=heat_recomputed,
        )
