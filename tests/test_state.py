"""
Unit tests for the Scene Model: validation, selection and revisions.
"""
import math

import pytest

from electrofield.config import DEFAULT_RANGE_V, MAX_CHARGE_UC, MAX_RANGE_V
from electrofield.model.charges import DisplaySettings, HeatQuantity, SceneData


class TestCharges:
    def test_add_selects_and_bumps_revisions(self, scene):
        before = scene.snapshot()
        charge = scene.add_charge(1.0, 2.0, -3.0)
        after = scene.snapshot()
        assert scene.selected_id == charge.id
        assert after.heat_revision > before.heat_revision
        assert after.flow_revision > before.flow_revision
        assert scene.charges == (charge,)

    def test_ids_are_unique(self, scene):
        ids = {scene.add_charge(0.1 * i, 0.1, 1.0).id for i in range(10)}
        assert len(ids) == 10

    @pytest.mark.parametrize("x,y,q", [
        (math.nan, 1.0, 1.0),
        (1.0, math.inf, 1.0),
        (1.0, 1.0, math.nan),
        (1.0, 1.0, MAX_CHARGE_UC * 2),
    ])
    def test_add_rejects_invalid(self, scene, x, y, q):
        with pytest.raises(ValueError):
            scene.add_charge(x, y, q)
        assert scene.charges == ()

    def test_move_does_not_bump_revisions(self, scene):
        charge = scene.add_charge(1.0, 1.0)
        emitted = []
        scene.charges_changed.connect(lambda: emitted.append(True))
        before = scene.snapshot()

        assert scene.move_charge(charge.id, 2.0, 1.5)
        after = scene.snapshot()
        assert after.charge_by_id(charge.id).x == 2.0
        assert after.heat_revision == before.heat_revision
        assert after.flow_revision == before.flow_revision
        assert emitted

        scene.commit_edit()
        assert scene.snapshot().heat_revision == before.heat_revision + 1

    def test_move_rejects_non_finite(self, scene):
        charge = scene.add_charge(1.0, 1.0)
        assert not scene.move_charge(charge.id, math.nan, 1.0)
        assert scene.charge_by_id(charge.id).x == 1.0

    def test_duplicate_copies_in_place(self, scene):
        original = scene.add_charge(1.0, 1.5, -2.5)
        copy = scene.duplicate_charge(original.id)
        assert copy.id != original.id
        assert (copy.x, copy.y, copy.q) == (original.x, original.y, original.q)
        assert scene.charge_by_id(original.id) == original
        assert scene.duplicate_charge(9999) is None

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf, MAX_CHARGE_UC + 1])
    def test_invalid_magnitude_keeps_previous(self, scene, bad):
        charge = scene.add_charge(1.0, 1.0, 4.0)
        assert not scene.set_charge_magnitude(charge.id, bad)
        assert scene.charge_by_id(charge.id).q == 4.0

    def test_magnitude_change_commits(self, scene):
        charge = scene.add_charge(1.0, 1.0, 4.0)
        before = scene.snapshot()
        assert scene.set_charge_magnitude(charge.id, -4.0)
        after = scene.snapshot()
        assert after.charge_by_id(charge.id).q == -4.0
        assert after.flow_revision == before.flow_revision + 1

    def test_remove_selected_clears_selection(self, scene):
        first = scene.add_charge(1.0, 1.0)
        second = scene.add_charge(2.0, 1.0)
        assert scene.remove_selected()
        assert scene.selected_id is None
        assert scene.charges == (first,)
        assert scene.charge_by_id(second.id) is None
        assert not scene.remove_selected()

    def test_clear(self, scene):
        scene.add_charge(1.0, 1.0)
        scene.add_charge(2.0, 1.0)
        scene.clear()
        assert scene.charges == ()
        assert scene.selected_charge() is None


class TestSelection:
    def test_select_emits_only_on_change(self, scene):
        charge = scene.add_charge(1.0, 1.0)
        received = []
        scene.selection_changed.connect(lambda charge_id: received.append(charge_id))
        scene.select(charge.id)
        scene.select(None)
        scene.select(None)
        assert received == [None]

    def test_selection_is_weak(self, scene):
        charge = scene.add_charge(1.0, 1.0)
        scene.remove_charge(charge.id)
        assert scene.selected_charge() is None


class TestDisplaySettings:
    @pytest.mark.parametrize("bad", [math.nan, math.inf, 0.0, -5.0, MAX_RANGE_V * 10])
    def test_invalid_range_rejected(self, scene, bad):
        assert not scene.set_range_v(bad)
        assert scene.settings.range_v == DEFAULT_RANGE_V

    def test_valid_range_stored_exactly(self, scene):
        assert scene.set_range_v(1234.5678)
        assert scene.settings.range_v == 1234.5678

    def test_settings_bump_heat_revision_only(self, scene):
        before = scene.snapshot()
        scene.set_auto_scale(False)
        scene.set_quantity(HeatQuantity.FIELD)
        after = scene.snapshot()
        assert after.heat_revision == before.heat_revision + 2
        assert after.flow_revision == before.flow_revision

    def test_layer_toggles_do_not_bump_heat_revision(self, scene):
        before = scene.snapshot()
        scene.set_show_glyphs(not before.settings.show_glyphs)
        scene.set_show_carriers(not before.settings.show_carriers)
        after = scene.snapshot()
        assert after.heat_revision == before.heat_revision
        assert after.flow_revision == before.flow_revision
        assert after.settings.show_glyphs != before.settings.show_glyphs

    def test_unchanged_setting_is_silent(self, scene):
        received = []
        scene.settings_changed.connect(lambda settings: received.append(settings))
        scene.set_show_glyphs(True)
        assert received == []
        scene.set_show_glyphs(False)
        assert received == [scene.settings]


class TestSceneData:
    def test_load_and_export(self, scene):
        settings = DisplaySettings(auto_scale=False, range_v=50.0)
        scene.add_charge(3.0, 3.0)
        scene.load_scene(SceneData(charges=((1.0, 2.0, 3.0), (0.5, 0.5, -1.0)), settings=settings))
        assert scene.selected_id is None
        assert [(c.x, c.y, c.q) for c in scene.charges] == [(1.0, 2.0, 3.0), (0.5, 0.5, -1.0)]
        assert scene.to_scene_data() == SceneData(
            charges=((1.0, 2.0, 3.0), (0.5, 0.5, -1.0)), settings=settings
        )

    def test_reset(self, scene):
        scene.add_charge(1.0, 1.0)
        scene.set_auto_scale(False)
        scene.reset()
        assert scene.to_scene_data() == SceneData()
