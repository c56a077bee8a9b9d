"""
Scene Settings Control Panel
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QLabel, QPushButton, QDoubleSpinBox, QGroupBox, QFormLayout,
    QCheckBox, QComboBox, QLineEdit, QRadioButton, QButtonGroup, QHBoxLayout
)

from electrofield.config import DEFAULT_CHARGE_UC, MAX_CHARGE_UC, SETTINGS_DEBOUNCE_MS
from electrofield.controller.interaction import ToolMode
from electrofield.model.charges import HeatQuantity

if TYPE_CHECKING:
    from electrofield.controller.interaction import InteractionController
    from electrofield.controller.render_loop import RenderFrame
    from electrofield.model.state import SceneModel

logger = logging.getLogger(__name__)

INVALID_STYLE = "QLineEdit { background-color: #ffd6d6; }"


class SettingsPanel(QWidget):
    def __init__(self, scene: SceneModel, interaction: InteractionController, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.scene = scene
        self.interaction = interaction

        layout = QVBoxLayout(self)

        # --- Tool ---
        grp_tool = QGroupBox("Tool")
        l_tool = QHBoxLayout(grp_tool)
        self.rb_edit = QRadioButton("Place / Drag")
        self.rb_measure = QRadioButton("Measure")
        self.rb_edit.setChecked(True)
        self.tool_group = QButtonGroup(self)
        self.tool_group.addButton(self.rb_edit)
        self.tool_group.addButton(self.rb_measure)
        self.rb_measure.toggled.connect(self.on_tool_changed)
        l_tool.addWidget(self.rb_edit)
        l_tool.addWidget(self.rb_measure)
        layout.addWidget(grp_tool)

        # --- Charges ---
        grp_charges = QGroupBox("Charges")
        form_charges = QFormLayout(grp_charges)

        self.spin_new_q = QDoubleSpinBox()
        self.spin_new_q.setDecimals(2)
        self.spin_new_q.setRange(-MAX_CHARGE_UC, MAX_CHARGE_UC)
        self.spin_new_q.setValue(DEFAULT_CHARGE_UC)
        self.spin_new_q.setSuffix(" µC")
        self.spin_new_q.valueChanged.connect(self.on_new_charge_changed)
        form_charges.addRow("New charge:", self.spin_new_q)

        self.spin_selected_q = QDoubleSpinBox()
        self.spin_selected_q.setDecimals(2)
        self.spin_selected_q.setRange(-MAX_CHARGE_UC, MAX_CHARGE_UC)
        self.spin_selected_q.setSuffix(" µC")
        self.spin_selected_q.setEnabled(False)
        self.spin_selected_q.valueChanged.connect(self._schedule_magnitude)
        form_charges.addRow("Selected charge:", self.spin_selected_q)

        self.btn_delete = QPushButton("Delete selected")
        self.btn_delete.setEnabled(False)
        self.btn_delete.clicked.connect(lambda: self.scene.remove_selected())
        self.btn_clear = QPushButton("Clear all")
        self.btn_clear.clicked.connect(lambda: self.scene.clear())
        hbox_buttons = QHBoxLayout()
        hbox_buttons.addWidget(self.btn_delete)
        hbox_buttons.addWidget(self.btn_clear)
        form_charges.addRow(hbox_buttons)

        hint = QLabel("Shift+drag or a two-finger touch duplicates a charge.")
        hint.setWordWrap(True)
        hint.setStyleSheet("QLabel { color: gray; }")
        form_charges.addRow(hint)

        layout.addWidget(grp_charges)

        # --- Heatmap ---
        grp_heat = QGroupBox("Heatmap")
        form_heat = QFormLayout(grp_heat)

        self.combo_quantity = QComboBox()
        self.combo_quantity.addItem("Potential V", HeatQuantity.POTENTIAL)
        self.combo_quantity.addItem("Field |E|", HeatQuantity.FIELD)
        self.combo_quantity.currentIndexChanged.connect(self.on_quantity_changed)
        form_heat.addRow("Quantity:", self.combo_quantity)

        self.chk_auto = QCheckBox("Auto")
        self.chk_auto.setChecked(self.scene.settings.auto_scale)
        self.chk_auto.toggled.connect(self.on_auto_toggled)
        form_heat.addRow("Range:", self.chk_auto)

        self.edit_range = QLineEdit(f"{self.scene.settings.range_v:g}")
        self.edit_range.setEnabled(not self.scene.settings.auto_scale)
        self.edit_range.textEdited.connect(self._schedule_range)
        form_heat.addRow("Manual range:", self.edit_range)

        # Read-only: computed amplitude is shown here, never pushed into the range field
        self.lbl_amplitude = QLabel("-")
        form_heat.addRow("Last amplitude:", self.lbl_amplitude)

        self.chk_glyphs = QCheckBox("Field vectors")
        self.chk_glyphs.setChecked(self.scene.settings.show_glyphs)
        self.chk_glyphs.toggled.connect(self.scene.set_show_glyphs)
        self.chk_carriers = QCheckBox("Carrier flow")
        self.chk_carriers.setChecked(self.scene.settings.show_carriers)
        self.chk_carriers.toggled.connect(self.scene.set_show_carriers)
        form_heat.addRow(self.chk_glyphs)
        form_heat.addRow(self.chk_carriers)

        layout.addWidget(grp_heat)

        # --- Probe ---
        grp_probe = QGroupBox("Probe")
        l_probe = QVBoxLayout(grp_probe)
        self.lbl_probe = QLabel("Switch to Measure and drag on the canvas.")
        self.lbl_probe.setWordWrap(True)
        self.lbl_probe.setTextFormat(Qt.TextFormat.RichText)
        l_probe.addWidget(self.lbl_probe)
        layout.addWidget(grp_probe)

        layout.addStretch()

        # Debounce timers for text-driven settings
        self._magnitude_timer = QTimer(self)
        self._magnitude_timer.setSingleShot(True)
        self._magnitude_timer.setInterval(SETTINGS_DEBOUNCE_MS)
        self._magnitude_timer.timeout.connect(self.apply_magnitude)

        self._range_timer = QTimer(self)
        self._range_timer.setSingleShot(True)
        self._range_timer.setInterval(SETTINGS_DEBOUNCE_MS)
        self._range_timer.timeout.connect(self.apply_range)

        self.scene.selection_changed.connect(self.load_selection)
        self.scene.charges_changed.connect(self._refresh_selected_value)
        self.scene.settings_changed.connect(self.load_from_state)

    # ---- slots ----

    def on_tool_changed(self, *_) -> None:
        mode = ToolMode.MEASURE if self.rb_measure.isChecked() else ToolMode.EDIT
        self.interaction.set_mode(mode)

    def on_new_charge_changed(self, value: float) -> None:
        self.interaction.placement_charge = value

    def on_quantity_changed(self, *_) -> None:
        self.scene.set_quantity(self.combo_quantity.currentData())

    def on_auto_toggled(self, checked: bool) -> None:
        self.edit_range.setEnabled(not checked)
        self.scene.set_auto_scale(checked)

    def _schedule_magnitude(self, *_) -> None:
        self._magnitude_timer.start()

    def _schedule_range(self, *_) -> None:
        self._range_timer.start()

    def apply_magnitude(self) -> None:
        charge_id = self.scene.selected_id
        if charge_id is None:
            return
        if not self.scene.set_charge_magnitude(charge_id, self.spin_selected_q.value()):
            self._refresh_selected_value()

    def apply_range(self) -> None:
        text = self.edit_range.text().strip()
        try:
            value = float(text)
        except ValueError:
            logger.warning(f"Ignoring non-numeric range '{text}'.")
            self.edit_range.setStyleSheet(INVALID_STYLE)
            return
        if self.scene.set_range_v(value):
            self.edit_range.setStyleSheet("")
        else:
            self.edit_range.setStyleSheet(INVALID_STYLE)

    # ---- state -> widgets ----

    def load_selection(self, charge_id) -> None:
        charge = self.scene.charge_by_id(charge_id)
        self.spin_selected_q.setEnabled(charge is not None)
        self.btn_delete.setEnabled(charge is not None)
        self._magnitude_timer.stop()
        self._refresh_selected_value()

    def _refresh_selected_value(self, *_) -> None:
        if self._magnitude_timer.isActive():
            return
        charge = self.scene.selected_charge()
        self.spin_selected_q.blockSignals(True)
        self.spin_selected_q.setValue(charge.q if charge is not None else 0.0)
        self.spin_selected_q.blockSignals(False)

    def load_from_state(self, *_) -> None:
        """Syncs widgets from the model after loads or external changes."""
        settings = self.scene.settings
        widgets = (self.chk_auto, self.combo_quantity, self.chk_glyphs, self.chk_carriers)
        for w in widgets:
            w.blockSignals(True)
        try:
            self.chk_auto.setChecked(settings.auto_scale)
            self.edit_range.setEnabled(not settings.auto_scale)
            self.combo_quantity.setCurrentIndex(self.combo_quantity.findData(settings.quantity))
            self.chk_glyphs.setChecked(settings.show_glyphs)
            self.chk_carriers.setChecked(settings.show_carriers)
        finally:
            for w in widgets:
                w.blockSignals(False)
        if not self._range_timer.isActive() and not self.edit_range.hasFocus():
            self.edit_range.setText(f"{settings.range_v:g}")
            self.edit_range.setStyleSheet("")

    def show_frame_info(self, frame: RenderFrame) -> None:
        """Display-only readouts for the latest frame."""
        if frame.heatmap is not None and frame.heat_recomputed:
            unit = "V" if frame.heatmap.quantity == HeatQuantity.POTENTIAL else "V/m"
            self.lbl_amplitude.setText(f"{frame.heatmap.amplitude:.4g} {unit} (clip {frame.heatmap.clip:.4g})")

        m = frame.measurement
        if m is None:
            return
        self.lbl_probe.setText(
            f"Distance: <b>{m.distance:.3f} m</b><br>"
            f"V: <b>{m.sample.potential:.4g} V</b><br>"
            f"E: ({m.sample.ex:.3g}, {m.sample.ey:.3g}) V/m, |E| = <b>{m.sample.magnitude:.4g} V/m</b>"
        )
