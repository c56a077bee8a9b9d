"""
Scene persistence controller.

Observes the Scene Model and writes it in the background:
    - live drag moves are throttled to one save per interval,
    - a committed edit (drag end, add, delete, ...) flushes right away,
    - while a save is running, newer requests collapse into one follow-up
      save of the latest scene; older pending data is discarded.
"""
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from electrofield.config import LOCAL_SCENE_PATH, PERSIST_INTERVAL_MS
from electrofield.controller.workers import SaveResult, SaveStatus, SaveWorker, save_scene
from electrofield.model.charges import SceneData
from electrofield.model.io import MALFORMED_NOTICE, SceneFileIO, SceneFormatError, load_scene_or_default

if TYPE_CHECKING:
    from electrofield.controller.workers import RemoteSceneStore
    from electrofield.model.state import SceneModel

logger = logging.getLogger(__name__)

STATUS_TEXT: dict[SaveStatus, str] = {
    SaveStatus.SAVED: "Saved",
    SaveStatus.LOCAL_ONLY: "Saved locally",
    SaveStatus.ERROR: "Save failed",
}


class PersistenceController(QObject):
    status_changed = Signal(str)
    notice = Signal(str)

    def __init__(
        self,
        scene: SceneModel,
        local_path: str = LOCAL_SCENE_PATH,
        remote: Optional[RemoteSceneStore] = None,
        interval_ms: int = PERSIST_INTERVAL_MS,
    ) -> None:
        super().__init__()
        self.scene = scene
        self.local_path = local_path
        self.remote = remote
        self.last_result: SaveResult | None = None

        self._worker: SaveWorker | None = None
        self._rerun = False
        self._suspended = False

        self._throttle_timer = QTimer(self)
        self._throttle_timer.setSingleShot(True)
        self._throttle_timer.setInterval(interval_ms)
        self._throttle_timer.timeout.connect(self.flush)

        scene.charges_changed.connect(self._on_scene_changed)
        scene.settings_changed.connect(self._on_scene_changed)
        scene.edit_committed.connect(self.flush)

    # ---- public API ----

    def load_initial(self) -> SceneData:
        """
        Restore the local scene into the model.

        A missing file yields the default scene silently; an unreadable one
        yields the default scene and a notice.
        """
        if not os.path.exists(self.local_path):
            data, message = SceneData(), None
        else:
            try:
                data, message = load_scene_or_default(SceneFileIO.read_mapping(self.local_path))
            except (OSError, SceneFormatError) as e:
                logger.warning(f"Could not read local scene: {e}")
                data, message = SceneData(), MALFORMED_NOTICE

        self._suspended = True
        try:
            self.scene.load_scene(data)
        finally:
            self._suspended = False

        if message:
            self.notice.emit(message)
        return data

    @property
    def is_saving(self) -> bool:
        """True while a save runs or a throttled one is pending."""
        return self._worker is not None or self._throttle_timer.isActive()

    def flush(self) -> None:
        """Save the current scene now (or right after the running save)."""
        if self._suspended:
            return
        self._throttle_timer.stop()
        if self._worker is not None:
            self._rerun = True
            return
        self._start_save(self.scene.to_scene_data())

    def wait(self, msecs: int = 5000) -> None:
        """Block until the running save finishes."""
        if self._worker is not None:
            self._worker.wait(msecs)

    def shutdown(self) -> SaveResult:
        """Final synchronous save, run when the window closes."""
        self._throttle_timer.stop()
        self.wait()
        self._rerun = False
        result = save_scene(self.scene.to_scene_data(), self.local_path, self.remote)
        self._on_result(result)
        return result

    # ---- internals ----

    def _on_scene_changed(self, *_) -> None:
        if self._suspended or self._throttle_timer.isActive():
            return
        self._throttle_timer.start()

    def _start_save(self, data: SceneData) -> None:
        self._rerun = False
        worker = SaveWorker(data, self.local_path, self.remote)
        worker.result_ready.connect(self._on_result)
        worker.finished.connect(self._on_worker_finished)
        self._worker = worker
        self.status_changed.emit("Saving...")
        worker.start()

    def _on_result(self, result: SaveResult) -> None:
        self.last_result = result
        text = STATUS_TEXT[result.status]
        if result.status != SaveStatus.SAVED and result.message:
            text = f"{text}: {result.message}"
        self.status_changed.emit(text)

    def _on_worker_finished(self) -> None:
        if self._worker is not None:
            self._worker.deleteLater()
        self._worker = None
        if self._rerun:
            self.flush()
