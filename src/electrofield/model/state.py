"""
Scene State (Data Model)
========================
This module defines the central data structure for the running application.

Why is this file needed?
------------------------
1. State Management: It holds the charges, the selection and the display
   settings in one place.
2. Persistence: This object is what gets serialized when saving a scene.
3. Decoupling: Controllers write to this object through its methods; the
   render loop and the solvers only ever see immutable snapshots.

Classes:
    SceneModel: The main container class (Qt signals for observers).
"""
from __future__ import annotations

import itertools
import logging
import math
from dataclasses import replace

from PySide6.QtCore import QObject, Signal

from electrofield.config import DEFAULT_CHARGE_UC, MAX_CHARGE_UC, MAX_RANGE_V
from electrofield.model.charges import Charge, DisplaySettings, HeatQuantity, SceneData, SceneSnapshot

# Layer toggles only change what is painted, never the sampled grid
OVERLAY_ONLY_SETTINGS = frozenset({"show_glyphs", "show_carriers"})

logger = logging.getLogger(__name__)


def _is_finite(*values: float) -> bool:
    try:
        return all(math.isfinite(float(v)) for v in values)
    except (TypeError, ValueError):
        return False


class SceneModel(QObject):
    """
    Authoritative store of the scene.

    Signals:
        charges_changed: any charge added, removed, moved or edited (also
            fired for every drag move).
        edit_committed: a finished edit that invalidates the heatmap and the
            flow pattern.
        selection_changed: selected id (or None).
        settings_changed: new DisplaySettings.
    """
    charges_changed = Signal()
    edit_committed = Signal()
    selection_changed = Signal(object)
    settings_changed = Signal(object)

    def __init__(self) -> None:
        super().__init__()
        self._ids = itertools.count(1)
        self._charges: list[Charge] = []
        self._selected_id: int | None = None
        self._settings = DisplaySettings()
        self._heat_revision = 0
        self._flow_revision = 0

    # ---- read access ----

    @property
    def charges(self) -> tuple[Charge, ...]:
        return tuple(self._charges)

    @property
    def settings(self) -> DisplaySettings:
        return self._settings

    @property
    def selected_id(self) -> int | None:
        return self._selected_id

    def charge_by_id(self, charge_id: int | None) -> Charge | None:
        if charge_id is None:
            return None
        for charge in self._charges:
            if charge.id == charge_id:
                return charge
        return None

    def selected_charge(self) -> Charge | None:
        """Resolve the weak selection reference, None if it points nowhere."""
        return self.charge_by_id(self._selected_id)

    def snapshot(self) -> SceneSnapshot:
        return SceneSnapshot(
            charges=tuple(self._charges),
            selected_id=self._selected_id,
            settings=self._settings,
            heat_revision=self._heat_revision,
            flow_revision=self._flow_revision,
        )

    # ---- charge mutation ----

    def add_charge(self, x: float, y: float, q: float = DEFAULT_CHARGE_UC) -> Charge:
        if not _is_finite(x, y, q):
            raise ValueError(f"Charge values must be finite, got x={x}, y={y}, q={q}.")
        if abs(q) > MAX_CHARGE_UC:
            raise ValueError(f"Charge magnitude {q} µC exceeds ±{MAX_CHARGE_UC} µC.")

        charge = Charge(id=next(self._ids), x=float(x), y=float(y), q=float(q))
        self._charges.append(charge)
        logger.debug(f"Added charge {charge}.")
        self._commit(flow=True)
        self.select(charge.id)
        return charge

    def duplicate_charge(self, charge_id: int) -> Charge | None:
        """Copy a charge in place; the original stays untouched."""
        original = self.charge_by_id(charge_id)
        if original is None:
            logger.warning(f"Cannot duplicate missing charge {charge_id}.")
            return None
        return self.add_charge(original.x, original.y, original.q)

    def move_charge(self, charge_id: int, x: float, y: float) -> bool:
        """
        Live drag update. Revisions are left alone until commit_edit() so the
        heatmap and flow pattern are not recomputed on every move.
        """
        if not _is_finite(x, y):
            logger.warning(f"Rejected non-finite position ({x}, {y}) for charge {charge_id}.")
            return False
        index = self._index_of(charge_id)
        if index is None:
            return False
        self._charges[index] = replace(self._charges[index], x=float(x), y=float(y))
        self.charges_changed.emit()
        return True

    def commit_edit(self) -> None:
        """Finalize a drag: heatmap and flow become stale."""
        self._commit(flow=True)

    def set_charge_magnitude(self, charge_id: int, q: float) -> bool:
        if not _is_finite(q) or abs(float(q)) > MAX_CHARGE_UC:
            logger.warning(f"Rejected charge magnitude {q!r}; keeping previous value.")
            return False
        index = self._index_of(charge_id)
        if index is None:
            return False
        if self._charges[index].q == float(q):
            return True
        self._charges[index] = replace(self._charges[index], q=float(q))
        # sign changes turn sources into sinks, so the flow is stale as well
        self._commit(flow=True)
        return True

    def remove_charge(self, charge_id: int) -> bool:
        index = self._index_of(charge_id)
        if index is None:
            return False
        removed = self._charges.pop(index)
        logger.debug(f"Removed charge {removed}.")
        self._commit(flow=True)
        if self._selected_id == charge_id:
            self.select(None)
        return True

    def remove_selected(self) -> bool:
        if self._selected_id is None:
            return False
        return self.remove_charge(self._selected_id)

    def clear(self) -> None:
        self._charges.clear()
        self._commit(flow=True)
        self.select(None)

    def select(self, charge_id: int | None) -> None:
        if charge_id != self._selected_id:
            self._selected_id = charge_id
            self.selection_changed.emit(charge_id)

    # ---- display settings ----

    def set_auto_scale(self, enabled: bool) -> None:
        self._update_settings(auto_scale=bool(enabled))

    def set_range_v(self, value: float) -> bool:
        """Manual clip value. Used exactly as given once accepted."""
        if not _is_finite(value) or float(value) <= 0.0 or float(value) > MAX_RANGE_V:
            logger.warning(f"Rejected display range {value!r}; keeping {self._settings.range_v}.")
            return False
        self._update_settings(range_v=float(value))
        return True

    def set_quantity(self, quantity: HeatQuantity) -> None:
        self._update_settings(quantity=HeatQuantity(quantity))

    def set_show_glyphs(self, visible: bool) -> None:
        self._update_settings(show_glyphs=bool(visible))

    def set_show_carriers(self, visible: bool) -> None:
        self._update_settings(show_carriers=bool(visible))

    # ---- persistence boundary ----

    def to_scene_data(self) -> SceneData:
        return SceneData(
            charges=tuple((c.x, c.y, c.q) for c in self._charges),
            settings=self._settings,
        )

    def load_scene(self, data: SceneData) -> None:
        """Replace the whole scene with already validated content."""
        self._charges = [
            Charge(id=next(self._ids), x=x, y=y, q=q) for x, y, q in data.charges
        ]
        self._settings = data.settings
        self._selected_id = None
        logger.info(f"Scene loaded with {len(self._charges)} charges.")
        self.selection_changed.emit(None)
        self.settings_changed.emit(self._settings)
        self._commit(flow=True)

    def reset(self) -> None:
        """Clear all data for a new scene."""
        self.load_scene(SceneData())
        logger.info("Scene state has been reset.")

    # ---- internals ----

    def _index_of(self, charge_id: int) -> int | None:
        for i, charge in enumerate(self._charges):
            if charge.id == charge_id:
                return i
        return None

    def _update_settings(self, **changes) -> None:
        new_settings = replace(self._settings, **changes)
        if new_settings == self._settings:
            return
        if not changes.keys() <= OVERLAY_ONLY_SETTINGS:
            self._heat_revision += 1
        self._settings = new_settings
        self.settings_changed.emit(self._settings)

    def _commit(self, flow: bool) -> None:
        self._heat_revision += 1
        if flow:
            self._flow_revision += 1
        self.charges_changed.emit()
        self.edit_committed.emit()
