"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the Scene Model.
2. Restores the locally persisted scene before the first frame.
3. Instantiates the Main Window (View) and passes the Model into it.
"""
import logging
import os
import sys

import pyqtgraph as pg
from PySide6.QtWidgets import QApplication

from electrofield.config import DATA_DIR
from electrofield.controller.persistence import PersistenceController
from electrofield.logging_config import resolve_level, setup_logging
from electrofield.model.state import SceneModel
from electrofield.view.main_window import MainWindow

LOG_FILE_NAME = "electrofield.log"


def main() -> None:
    # 1. Setup Logging (Console + Optional File)
    level = logging.DEBUG if os.environ.get("ELECTROFIELD_DEBUG") else resolve_level()
    logger = setup_logging(level=level, log_file=os.path.join(DATA_DIR, LOG_FILE_NAME))
    logger.debug(f"Data directory: {DATA_DIR}")

    # 2. Create the Qt Application
    app = QApplication(sys.argv)
    app.setApplicationName("Electrofield")
    pg.setConfigOptions(antialias=True)

    # 3. Initialize the Data Model and restore the last scene
    scene = SceneModel()
    persistence = PersistenceController(scene)
    persistence.load_initial()

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(scene, persistence)
    window.show()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
