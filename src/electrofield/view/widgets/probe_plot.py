"""
Potential profile along the measurement segment (pyqtgraph).
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import pyqtgraph as pg
from PySide6.QtWidgets import QWidget, QVBoxLayout

from electrofield.solver.heatmap import probe_profile

if TYPE_CHECKING:
    from electrofield.controller.interaction import Measurement
    from electrofield.model.charges import Charge


class ProbePlot(QWidget):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setBackground('w')
        self.plot_widget.showGrid(x=True, y=True, alpha=0.3)
        self.plot_widget.setLabel('bottom', 'Distance [m]', color='black')
        self.plot_widget.setLabel('left', 'Potential [V]', color='black')
        self.plot_widget.getAxis('bottom').setPen('k')
        self.plot_widget.getAxis('left').setPen('k')
        self.plot_widget.getAxis('bottom').setTextPen('k')
        self.plot_widget.getAxis('left').setTextPen('k')
        self.plot_widget.setMinimumHeight(160)
        layout.addWidget(self.plot_widget)

        self._curve = self.plot_widget.plot([], [], pen=pg.mkPen(color=(0, 120, 215), width=2))
        self._last: Optional[Measurement] = None

    def update_measurement(self, charges: tuple[Charge, ...], measurement: Optional[Measurement]) -> None:
        if measurement is None or measurement is self._last:
            return
        self._last = measurement
        if measurement.distance == 0.0:
            self._curve.setData([], [])
            return
        distance, potential = probe_profile(charges, measurement.start, measurement.end)
        self._curve.setData(distance, potential)
