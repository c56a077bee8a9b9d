"""
Unit tests for scene persistence: mapping validation, HDF5 files and the
local-first save policy.
"""
import json
import math
import time

import h5py
import pytest
from PySide6.QtCore import QCoreApplication

from electrofield.controller.interaction import InteractionController, PointerEvent, PointerSource
from electrofield.controller.persistence import PersistenceController
from electrofield.controller.workers import SaveStatus, save_scene
from electrofield.model.charges import DisplaySettings, HeatQuantity, SceneData
from electrofield.model.io import (
    MALFORMED_NOTICE,
    SceneFileIO,
    SceneFormatError,
    load_scene_or_default,
    scene_from_dict,
    scene_to_dict,
)

SAMPLE = SceneData(
    charges=((1.0, 2.0, 3.0), (0.25, 0.5, -1.5)),
    settings=DisplaySettings(auto_scale=False, range_v=2500.0, quantity=HeatQuantity.FIELD),
)


class RecordingStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.pushed = []

    def push(self, mapping):
        if self.fail:
            raise ConnectionError("offline")
        self.pushed.append(mapping)


def pump(seconds: float = 0.0) -> None:
    QCoreApplication.processEvents()
    if seconds:
        time.sleep(seconds)


def wait_until_idle(controller: PersistenceController, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while controller.is_saving:
        assert time.monotonic() < deadline, "save did not finish"
        pump(0.005)
    pump()


class TestSceneMapping:
    def test_mapping_layout(self):
        mapping = scene_to_dict(SAMPLE)
        assert mapping["charges"][0] == {"x": 1.0, "y": 2.0, "q": 3.0}
        assert mapping["autoScale"] is False
        assert mapping["rangeV"] == 2500.0
        assert scene_from_dict(mapping) == SAMPLE

    def test_missing_optional_keys_use_defaults(self):
        data = scene_from_dict({"charges": [{"x": 1, "y": 2, "q": -1}]})
        assert data.charges == ((1.0, 2.0, -1.0),)
        assert data.settings == DisplaySettings()

    @pytest.mark.parametrize("mapping", [
        {"charges": [{"x": math.nan, "y": 1.0, "q": 1.0}]},
        {"charges": [{"x": 1.0, "y": math.inf, "q": 1.0}]},
        {"charges": [{"x": 1.0, "y": 1.0}]},
        {"charges": [{"x": True, "y": 1.0, "q": 1.0}]},
        {"charges": [{"x": "1", "y": 1.0, "q": 1.0}]},
        {"charges": "nope"},
        {"charges": [], "rangeV": math.nan},
        {"charges": [], "rangeV": -1.0},
        {"charges": [], "autoScale": "yes"},
        {"charges": [], "quantity": "temperature"},
        [1, 2, 3],
    ])
    def test_malformed_input_rejected(self, mapping):
        with pytest.raises(SceneFormatError):
            scene_from_dict(mapping)
        data, notice = load_scene_or_default(mapping)
        assert data == SceneData()
        assert notice == MALFORMED_NOTICE

    def test_valid_input_has_no_notice(self):
        data, notice = load_scene_or_default(scene_to_dict(SAMPLE))
        assert data == SAMPLE
        assert notice is None


class TestSceneFile:
    def test_hdf5_round_trip(self, tmp_path):
        path = str(tmp_path / "scene.h5")
        SceneFileIO.save(SAMPLE, path)
        assert SceneFileIO.load(path) == SAMPLE
        assert not (tmp_path / "scene.h5.tmp").exists()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SceneFileIO.load(str(tmp_path / "absent.h5"))

    def test_not_hdf5(self, tmp_path):
        path = tmp_path / "scene.h5"
        path.write_text("not a scene")
        with pytest.raises(SceneFormatError):
            SceneFileIO.load(str(path))


class TestSavePolicy:
    def test_no_remote_is_local_only(self, tmp_path):
        path = str(tmp_path / "scene.h5")
        result = save_scene(SAMPLE, path)
        assert result.status == SaveStatus.LOCAL_ONLY
        assert SceneFileIO.load(path) == SAMPLE

    def test_remote_failure_keeps_local_copy(self, tmp_path):
        path = str(tmp_path / "scene.h5")
        result = save_scene(SAMPLE, path, RecordingStore(fail=True))
        assert result.status == SaveStatus.LOCAL_ONLY
        assert "offline" in result.message
        assert SceneFileIO.load(path) == SAMPLE

    def test_remote_success(self, tmp_path):
        store = RecordingStore()
        result = save_scene(SAMPLE, str(tmp_path / "scene.h5"), store)
        assert result.status == SaveStatus.SAVED
        assert store.pushed == [scene_to_dict(SAMPLE)]

    def test_local_failure_is_reported(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = RecordingStore()
        result = save_scene(SAMPLE, str(blocker / "scene.h5"), store)
        assert result.status == SaveStatus.ERROR
        assert store.pushed == []


class TestInitialLoad:
    def test_missing_file_gives_empty_scene_silently(self, scene, tmp_path):
        controller = PersistenceController(scene, local_path=str(tmp_path / "scene.h5"))
        notices = []
        controller.notice.connect(lambda message: notices.append(message))
        assert controller.load_initial() == SceneData()
        assert notices == []

    def test_restores_saved_scene(self, scene, tmp_path):
        path = str(tmp_path / "scene.h5")
        SceneFileIO.save(SAMPLE, path)
        controller = PersistenceController(scene, local_path=path)
        controller.load_initial()
        assert scene.to_scene_data() == SAMPLE

    def test_malformed_file_gives_notice(self, scene, tmp_path):
        path = str(tmp_path / "scene.h5")
        with h5py.File(path, "w") as f:
            f.attrs["charges_json"] = json.dumps([{"x": math.nan, "y": 1.0, "q": 1.0}])
        controller = PersistenceController(scene, local_path=path)
        notices = []
        controller.notice.connect(lambda message: notices.append(message))
        controller.load_initial()
        assert scene.charges == ()
        assert notices == [MALFORMED_NOTICE]

    def test_shutdown_saves_synchronously(self, scene, tmp_path):
        path = str(tmp_path / "scene.h5")
        scene.load_scene(SAMPLE)
        controller = PersistenceController(scene, local_path=path)
        result = controller.shutdown()
        assert result.status == SaveStatus.LOCAL_ONLY
        assert controller.last_result == result
        assert SceneFileIO.load(path) == SAMPLE


class TestSaveCoalescing:
    def test_drag_is_throttled_and_release_saves_final_position(self, scene, tmp_path):
        path = str(tmp_path / "scene.h5")
        scene.load_scene(SceneData(charges=((1.0, 1.0, 2.0),)))
        store = RecordingStore()
        interval_ms = 50
        controller = PersistenceController(scene, local_path=path, remote=store, interval_ms=interval_ms)
        interaction = InteractionController(scene)

        moves = 40
        interaction.pointer_down(PointerEvent(source=PointerSource.MOUSE, point=(1.0, 1.0)))
        started = time.monotonic()
        for i in range(1, moves + 1):
            interaction.pointer_move((1.0 + 0.01 * i, 1.0))
            pump(0.01)
        elapsed_ms = (time.monotonic() - started) * 1000
        interaction.pointer_up()
        wait_until_idle(controller)

        # one save per elapsed interval at most, plus the flush on release
        assert 1 <= len(store.pushed) <= elapsed_ms / interval_ms + 2
        assert len(store.pushed) < moves
        assert store.pushed[-1]["charges"][0]["x"] == pytest.approx(1.4)
        assert SceneFileIO.load(path).charges[0][0] == pytest.approx(1.4)

    def test_requests_during_a_save_collapse_into_one(self, scene, tmp_path):
        store = RecordingStore()
        controller = PersistenceController(scene, local_path=str(tmp_path / "scene.h5"), remote=store)

        # each add commits and asks for a save while the first one is still running
        for i in range(5):
            scene.add_charge(0.5 + 0.5 * i, 1.0)
        wait_until_idle(controller)

        assert len(store.pushed) == 2
        assert len(store.pushed[0]["charges"]) == 1
        assert len(store.pushed[-1]["charges"]) == 5
        assert controller.last_result.status == SaveStatus.SAVED

    def test_no_save_without_changes(self, scene, tmp_path):
        store = RecordingStore()
        controller = PersistenceController(scene, local_path=str(tmp_path / "scene.h5"), remote=store, interval_ms=10)
        pump(0.05)
        pump()
        assert not controller.is_saving
        assert store.pushed == []
