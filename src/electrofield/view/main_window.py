"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the Field Canvas and the
side panel.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (like File -> Open) to the scene model
   and drives the render loop from a frame timer.
"""
import logging
import os

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QFileDialog, QMessageBox, QLabel
)

from electrofield.config import FRAME_INTERVAL_MS
from electrofield.controller.interaction import CanvasTransform, InteractionController
from electrofield.controller.persistence import PersistenceController
from electrofield.controller.render_loop import RenderFrame, RenderLoop
from electrofield.model.io import SceneFileIO, SceneFormatError
from electrofield.model.state import SceneModel
from electrofield.solver.flow import FlowIntegrator
from electrofield.solver.heatmap import HeatmapRasterizer
from electrofield.view.panels.settings_panel import SettingsPanel
from electrofield.view.widgets.field_canvas import FieldCanvas
from electrofield.view.widgets.probe_plot import ProbePlot

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "Electrofield"
SCENE_FILE_FILTER = "Electrofield Scene (*.h5)"


class MainWindow(QMainWindow):
    def __init__(self, scene: SceneModel, persistence: PersistenceController | None = None) -> None:
        super().__init__()
        self.scene: SceneModel = scene
        self.filepath: str | None = None

        self.update_window_title()

        # --- CONTROLLERS ---
        self.interaction = InteractionController(scene, CanvasTransform())
        self.render_loop = RenderLoop(scene, HeatmapRasterizer(), FlowIntegrator(), self.interaction)
        self.persistence = persistence if persistence is not None else PersistenceController(scene)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QHBoxLayout(main_widget)

        # --- LEFT SIDE: Canvas ---
        self.canvas = FieldCanvas(scene, self.interaction)
        main_layout.addWidget(self.canvas, alignment=Qt.AlignmentFlag.AlignTop)

        # --- RIGHT SIDE: Panel + Probe Plot ---
        side = QWidget()
        side_layout = QVBoxLayout(side)
        side_layout.setContentsMargins(0, 0, 0, 0)
        self.panel = SettingsPanel(scene, self.interaction)
        self.probe_plot = ProbePlot()
        side_layout.addWidget(self.panel)
        side_layout.addWidget(self.probe_plot)
        side.setFixedWidth(340)
        main_layout.addWidget(side)

        # --- STATUS BAR ---
        self.lbl_save_status = QLabel("")
        self.statusBar().addPermanentWidget(self.lbl_save_status)
        self.persistence.status_changed.connect(self.lbl_save_status.setText)
        self.persistence.notice.connect(self.on_notice)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # --- FRAME TIMER ---
        self.frame_timer = QTimer(self)
        self.frame_timer.setInterval(FRAME_INTERVAL_MS)
        self.frame_timer.timeout.connect(self.on_frame)
        self.frame_timer.start()

    def _create_actions(self) -> None:
        self.act_new = QAction("New Scene", self)
        self.act_new.setShortcut("Ctrl+N")
        self.act_new.triggered.connect(self.on_file_new)

        self.act_open = QAction("Open...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_save_as = QAction("Save As...", self)
        self.act_save_as.setShortcut("Ctrl+Shift+S")
        self.act_save_as.triggered.connect(self.on_file_save_as)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

    def _create_menus(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction(self.act_new)
        file_menu.addSeparator()
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_save_as)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        filename = os.path.basename(self.filepath) if self.filepath else "Untitled"
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{filename}]")

    def on_frame(self) -> None:
        frame: RenderFrame = self.render_loop.tick()
        self.canvas.set_frame(frame)
        self.panel.show_frame_info(frame)
        self.probe_plot.update_measurement(frame.charges, frame.measurement)

    def on_notice(self, message: str) -> None:
        self.statusBar().showMessage(message, 8000)

    # --- FILE ACTIONS ---
    def on_file_new(self) -> None:
        reply = QMessageBox.question(
            self, "New Scene", "Remove all charges and reset the display settings?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        self.scene.reset()
        self.filepath = None
        self.update_window_title()

    def on_file_open(self) -> None:
        filepath, _ = QFileDialog.getOpenFileName(self, "Open Scene", "", SCENE_FILE_FILTER)
        if not filepath:
            return
        try:
            data = SceneFileIO.load(filepath)
        except (OSError, SceneFormatError) as e:
            logger.error(f"Failed to open scene: {e}")
            QMessageBox.critical(self, "Error", f"Could not open scene:\n{e}")
            return
        self.scene.load_scene(data)
        self.filepath = filepath
        self.update_window_title()
        self.statusBar().showMessage(f"Opened {os.path.basename(filepath)}", 4000)

    def on_file_save_as(self) -> None:
        filepath, _ = QFileDialog.getSaveFileName(self, "Save Scene As", "", SCENE_FILE_FILTER)
        if not filepath:
            return
        if not filepath.endswith(".h5"):
            filepath += ".h5"
        try:
            SceneFileIO.save(self.scene.to_scene_data(), filepath)
        except Exception as e:
            QMessageBox.critical(self, "Error", f"Could not save scene:\n{e}")
            return
        self.filepath = filepath
        self.update_window_title()
        self.statusBar().showMessage(f"Saved {os.path.basename(filepath)}", 4000)

    def closeEvent(self, event, /) -> None:
        self.frame_timer.stop()
        self.persistence.shutdown()
        super().closeEvent(event)
