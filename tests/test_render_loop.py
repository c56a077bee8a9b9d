"""
Unit tests for the render loop: heatmap recompute only when stale, and no
writes back into the Scene Model.
"""
import numpy as np
import pytest

from electrofield.controller.interaction import InteractionController, PointerEvent, PointerSource, ToolMode
from electrofield.controller.render_loop import RenderLoop
from electrofield.solver.flow import FlowIntegrator
from electrofield.solver.heatmap import HeatmapRasterizer


@pytest.fixture
def interaction(scene):
    return InteractionController(scene)


@pytest.fixture
def loop(scene, interaction):
    return RenderLoop(
        scene,
        HeatmapRasterizer(nx=24, ny=16),
        FlowIntegrator(carriers_per_source=6),
        interaction,
    )


class TestRecompute:
    def test_first_tick_recomputes(self, scene, loop):
        scene.add_charge(1.0, 1.0)
        assert loop.heat_dirty
        frame = loop.tick()
        assert frame.heat_recomputed
        assert frame.heatmap is not None
        assert not loop.heat_dirty

    def test_clean_ticks_reuse_heatmap(self, scene, loop):
        scene.add_charge(1.0, 1.0)
        first = loop.tick()
        second = loop.tick()
        assert not second.heat_recomputed
        assert second.heatmap is first.heatmap

    def test_drag_recomputes_on_commit_only(self, scene, loop):
        charge = scene.add_charge(1.0, 1.0)
        loop.tick()
        scene.move_charge(charge.id, 2.0, 1.0)
        assert not loop.tick().heat_recomputed
        scene.commit_edit()
        assert loop.tick().heat_recomputed

    def test_settings_change_recomputes(self, scene, loop):
        loop.tick()
        scene.set_range_v(77.0)
        frame = loop.tick()
        assert frame.heat_recomputed

    def test_layer_toggle_reuses_heatmap(self, scene, loop):
        scene.add_charge(1.0, 1.0)
        loop.tick()
        scene.set_show_glyphs(not scene.settings.show_glyphs)
        frame = loop.tick()
        assert not frame.heat_recomputed
        assert frame.settings.show_glyphs == scene.settings.show_glyphs

    def test_invalidate_forces_recompute(self, loop):
        loop.tick()
        loop.invalidate()
        assert loop.tick().heat_recomputed


class TestReadOnly:
    def test_tick_does_not_mutate_scene(self, scene, loop):
        scene.add_charge(1.0, 1.0, 5.0)
        scene.add_charge(3.0, 2.0, -5.0)
        scene.set_auto_scale(False)
        scene.set_range_v(12.5)
        before = scene.snapshot()
        for _ in range(20):
            frame = loop.tick()
        assert scene.snapshot() == before
        assert frame.heatmap.clip == 12.5
        assert scene.settings.range_v == 12.5

    def test_frame_contents(self, scene, loop):
        charge = scene.add_charge(1.0, 1.0)
        frame = loop.tick()
        assert frame.charges == (charge,)
        assert frame.selected_id == charge.id
        assert frame.carriers.shape == (6, 2)
        assert loop.frame_count == 1

    def test_carriers_advance_every_tick(self, scene, loop):
        scene.add_charge(2.4, 1.6)
        first = loop.tick().carriers
        second = loop.tick().carriers
        assert not np.array_equal(first, second)

    def test_measurement_is_forwarded(self, scene, interaction, loop):
        interaction.set_mode(ToolMode.MEASURE)
        interaction.pointer_down(PointerEvent(source=PointerSource.MOUSE, point=(1.0, 1.0)))
        interaction.pointer_move((2.0, 1.0))
        frame = loop.tick()
        assert frame.measurement is interaction.measurement
