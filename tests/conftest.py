"""Shared fixtures for the electrofield test suite."""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

from electrofield.model.state import SceneModel


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Timers, threads and panel widgets need an application object; rendering stays offscreen."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def scene():
    return SceneModel()
