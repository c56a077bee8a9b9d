"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling persistence writes.

Why is this file needed?
------------------------
1. Responsiveness: Disk and network writes must never stall the frame timer.
   These classes push the write to a background thread.
2. Signals: They report the outcome (saved / local only / error) back to the
   GUI thread through a queued Qt Signal; nothing waits on them.

Classes:
    SaveWorker: Writes one scene locally, then best-effort remotely.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Optional, Protocol

from PySide6.QtCore import QThread, Signal

from electrofield.model.charges import SceneData
from electrofield.model.io import SceneFileIO, scene_to_dict

logger = logging.getLogger(__name__)


class RemoteSceneStore(Protocol):
    """Cross-device document store. Implemented outside this package."""
    def push(self, mapping: dict[str, Any]) -> None: ...


class SaveStatus(StrEnum):
    SAVED = "saved"
    LOCAL_ONLY = "local_only"
    ERROR = "error"


@dataclass(frozen=True)
class SaveResult:
    status: SaveStatus
    message: str = ""


def save_scene(data: SceneData, local_path: str, remote: Optional[RemoteSceneStore] = None) -> SaveResult:
    """
    Local write first, then the remote one. Remote failures degrade to a
    local-only result; nothing is raised.
    """
    try:
        SceneFileIO.save(data, local_path)
    except Exception as e:
        return SaveResult(SaveStatus.ERROR, f"Local save failed: {e}")

    if remote is None:
        return SaveResult(SaveStatus.LOCAL_ONLY, "Saved on this device.")

    try:
        remote.push(scene_to_dict(data))
    except Exception as e:
        logger.warning(f"Remote save failed, kept local copy: {e}")
        return SaveResult(SaveStatus.LOCAL_ONLY, f"Remote unavailable, saved on this device ({e}).")

    return SaveResult(SaveStatus.SAVED, "Saved.")


class SaveWorker(QThread):
    # Signal to update the status indicator from the background
    result_ready = Signal(object)  # SaveResult

    def __init__(self, data: SceneData, local_path: str, remote: Optional[RemoteSceneStore] = None) -> None:
        super().__init__()
        self.data = data
        self.local_path = local_path
        self.remote = remote

    def run(self) -> None:
        logger.debug("Starting scene save in background thread...")
        result = save_scene(self.data, self.local_path, self.remote)
        logger.info(f"Scene save finished: {result.status}.")
        self.result_ready.emit(result)
