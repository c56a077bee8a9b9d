"""
Unit tests for the settings panel: debounced text input and rejection of
invalid values at the settings boundary.
"""
import time

import pytest
from PySide6.QtCore import QCoreApplication

from electrofield.config import DEFAULT_RANGE_V, SETTINGS_DEBOUNCE_MS
from electrofield.controller.interaction import InteractionController
from electrofield.view.panels.settings_panel import INVALID_STYLE, SettingsPanel


def settle(ms: int = SETTINGS_DEBOUNCE_MS * 2) -> None:
    """Process events until the debounce interval has certainly elapsed."""
    deadline = time.monotonic() + ms / 1000
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        time.sleep(0.005)
    QCoreApplication.processEvents()


def type_range(panel: SettingsPanel, text: str) -> None:
    panel.edit_range.setText(text)
    panel.edit_range.textEdited.emit(text)


@pytest.fixture
def panel(scene):
    scene.set_auto_scale(False)
    return SettingsPanel(scene, InteractionController(scene))


class TestRangeInput:
    def test_burst_of_edits_applies_once(self, scene, panel):
        before = scene.snapshot().heat_revision
        for text in ("1", "12", "125", "1250"):
            type_range(panel, text)
        assert scene.settings.range_v == DEFAULT_RANGE_V

        settle()
        assert scene.settings.range_v == 1250.0
        assert scene.snapshot().heat_revision == before + 1
        assert panel.edit_range.styleSheet() == ""

    @pytest.mark.parametrize("text", ["abc", "", "-5", "nan", "inf"])
    def test_invalid_text_keeps_previous_range(self, scene, panel, text):
        before = scene.snapshot().heat_revision
        type_range(panel, text)
        settle()
        assert scene.settings.range_v == DEFAULT_RANGE_V
        assert scene.snapshot().heat_revision == before
        assert panel.edit_range.styleSheet() == INVALID_STYLE

    def test_valid_text_clears_invalid_style(self, scene, panel):
        type_range(panel, "abc")
        settle()
        type_range(panel, "300")
        settle()
        assert scene.settings.range_v == 300.0
        assert panel.edit_range.styleSheet() == ""


class TestSelectedMagnitude:
    def test_burst_of_edits_applies_once(self, scene, panel):
        charge = scene.add_charge(1.0, 1.0, 2.0)
        assert panel.spin_selected_q.isEnabled()
        before = scene.snapshot().heat_revision

        for value in (3.0, 4.0, -5.0):
            panel.spin_selected_q.setValue(value)
        assert scene.charge_by_id(charge.id).q == 2.0

        settle()
        assert scene.charge_by_id(charge.id).q == -5.0
        assert scene.snapshot().heat_revision == before + 1

    def test_no_selection_ignores_edits(self, scene, panel):
        charge = scene.add_charge(1.0, 1.0, 2.0)
        scene.select(None)
        before = scene.snapshot().heat_revision
        panel.spin_selected_q.setValue(7.0)
        settle()
        assert scene.charge_by_id(charge.id).q == 2.0
        assert scene.snapshot().heat_revision == before
