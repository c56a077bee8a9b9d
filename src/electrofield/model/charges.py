"""
Scene Value Types
=================
Immutable records shared between the Scene Model and its read-only consumers.

Classes:
    Charge: A point charge on the plane.
    HeatQuantity: Which scalar the heatmap shows.
    DisplaySettings: Heatmap range and layer toggles.
    SceneData: Serializable scene content (no ids, no revisions).
    SceneSnapshot: Per-frame consistent view of the scene.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum

from electrofield.config import DEFAULT_RANGE_V


class HeatQuantity(StrEnum):
    POTENTIAL = "potential"
    FIELD = "field"


@dataclass(frozen=True)
class Charge:
    id: int
    x: float  # m
    y: float  # m
    q: float  # µC

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.x - x, self.y - y)


@dataclass(frozen=True)
class DisplaySettings:
    auto_scale: bool = True
    range_v: float = DEFAULT_RANGE_V
    quantity: HeatQuantity = HeatQuantity.POTENTIAL
    show_glyphs: bool = True
    show_carriers: bool = True


@dataclass(frozen=True)
class SceneData:
    """Scene content as it crosses the persistence boundary."""
    charges: tuple[tuple[float, float, float], ...] = ()  # (x, y, q)
    settings: DisplaySettings = field(default_factory=DisplaySettings)


@dataclass(frozen=True)
class SceneSnapshot:
    """
    A consistent copy of the scene taken at the start of a render pass.

    Revisions only ever increase; a consumer is stale when the revision it
    last processed differs from the snapshot's.
    """
    charges: tuple[Charge, ...] = ()
    selected_id: int | None = None
    settings: DisplaySettings = field(default_factory=DisplaySettings)
    heat_revision: int = 0
    flow_revision: int = 0

    def charge_by_id(self, charge_id: int | None) -> Charge | None:
        if charge_id is None:
            return None
        for charge in self.charges:
            if charge.id == charge_id:
                return charge
        return None
