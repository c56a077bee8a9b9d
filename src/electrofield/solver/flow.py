"""
Flow Integrator
===============
Explicit-Euler particle tracer that animates charge carriers along field
lines. Illustrative, not a quantitative field-line solver.

Carriers start on a small circle around every positive charge (source) and
follow E / |E|. A carrier is sent back to its seed point when it
    - leaves the bounds,
    - gets older than max_age (no orbit lock around neutral regions),
    - comes within sink_radius of a sufficiently negative charge,
    - sits in a vanishing field.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from electrofield.config import (
    CARRIER_MAX_AGE,
    CARRIER_SEED_RADIUS,
    CARRIER_SPEED,
    CARRIER_SPEED_EMPHASIS,
    CARRIERS_PER_SOURCE,
    SINK_RADIUS,
    SINK_THRESHOLD_UC,
    STAGNATION_FIELD,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from electrofield.solver.field import field_at_points

if TYPE_CHECKING:
    import numpy.typing as npt

    from electrofield.model.charges import SceneSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Carrier:
    position: tuple[float, float]
    age: int
    seed_charge_id: int


@dataclass(frozen=True)
class Bounds:
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    def contains(self, xs: npt.NDArray[np.float64], ys: npt.NDArray[np.float64]) -> npt.NDArray[np.bool_]:
        return (xs >= self.x_min) & (xs <= self.x_max) & (ys >= self.y_min) & (ys <= self.y_max)


class FlowIntegrator:
    def __init__(
        self,
        bounds: Bounds | None = None,
        carriers_per_source: int = CARRIERS_PER_SOURCE,
        speed_base: float = CARRIER_SPEED,
        max_age: int = CARRIER_MAX_AGE,
        sink_radius: float = SINK_RADIUS,
        sink_threshold: float = SINK_THRESHOLD_UC,
        seed_radius: float = CARRIER_SEED_RADIUS,
        speed_emphasis: float = CARRIER_SPEED_EMPHASIS,
    ) -> None:
        if carriers_per_source < 0 or max_age < 1:
            raise ValueError("carriers_per_source must be >= 0 and max_age >= 1.")
        self.bounds = bounds if bounds is not None else Bounds(0.0, 0.0, WORLD_WIDTH, WORLD_HEIGHT)
        self.carriers_per_source = carriers_per_source
        self.speed_base = speed_base
        self.max_age = max_age
        self.sink_radius = sink_radius
        self.sink_threshold = sink_threshold
        self.seed_radius = seed_radius
        self.speed_emphasis = speed_emphasis

        self._pos = np.empty((0, 2))
        self._seed = np.empty((0, 2))
        self._age = np.empty(0, dtype=np.int64)
        self._seed_ids = np.empty(0, dtype=np.int64)
        self._reference_field = 1.0

    # ---- read access ----

    @property
    def count(self) -> int:
        return self._pos.shape[0]

    @property
    def positions(self) -> npt.NDArray[np.float64]:
        return self._pos.copy()

    @property
    def ages(self) -> npt.NDArray[np.int64]:
        return self._age.copy()

    def carriers(self) -> list[Carrier]:
        return [
            Carrier(position=(float(p[0]), float(p[1])), age=int(a), seed_charge_id=int(s))
            for p, a, s in zip(self._pos, self._age, self._seed_ids)
        ]

    # ---- lifecycle ----

    def reseed(self, snapshot: SceneSnapshot) -> None:
        """Place carriers_per_source carriers at evenly spaced angles around every source."""
        seeds: list[tuple[float, float]] = []
        seed_ids: list[int] = []
        n = self.carriers_per_source
        for charge in snapshot.charges:
            if charge.q <= 0.0:
                continue
            for i in range(n):
                angle = 2.0 * math.pi * i / n
                sx = charge.x + self.seed_radius * math.cos(angle)
                sy = charge.y + self.seed_radius * math.sin(angle)
                if not self.bounds.contains(np.array(sx), np.array(sy)):
                    continue
                seeds.append((sx, sy))
                seed_ids.append(charge.id)

        self._seed = np.array(seeds, dtype=np.float64).reshape(-1, 2)
        self._pos = self._seed.copy()
        self._seed_ids = np.array(seed_ids, dtype=np.int64)
        # stagger ages so carriers of one source do not retire in lockstep
        self._age = (np.arange(len(seeds), dtype=np.int64) * 7) % self.max_age

        if seeds:
            _, ex, ey = field_at_points(snapshot.charges, self._seed[:, 0], self._seed[:, 1])
            self._reference_field = max(float(np.median(np.hypot(ex, ey))), STAGNATION_FIELD)
        logger.debug(f"Reseeded {len(seeds)} carriers.")

    def step(self, snapshot: SceneSnapshot) -> None:
        """Advance every live carrier by one explicit-Euler step."""
        if self.count == 0:
            return

        _, ex, ey = field_at_points(snapshot.charges, self._pos[:, 0], self._pos[:, 1])
        magnitude = np.hypot(ex, ey)
        moving = magnitude > STAGNATION_FIELD

        safe = np.where(moving, magnitude, 1.0)
        # bounded emphasis: strong fields move up to (1 + emphasis) times faster
        emphasis = 1.0 + self.speed_emphasis * np.clip(magnitude / self._reference_field, 0.0, 1.0)
        step = self.speed_base * emphasis / safe

        self._pos[:, 0] += np.where(moving, ex * step, 0.0)
        self._pos[:, 1] += np.where(moving, ey * step, 0.0)
        self._age += 1

        retire = ~moving
        retire |= self._age > self.max_age
        retire |= ~self.bounds.contains(self._pos[:, 0], self._pos[:, 1])
        retire |= self._near_sink(snapshot)

        if np.any(retire):
            self._pos[retire] = self._seed[retire]
            self._age[retire] = 0

    def _near_sink(self, snapshot: SceneSnapshot) -> npt.NDArray[np.bool_]:
        hit = np.zeros(self.count, dtype=bool)
        for charge in snapshot.charges:
            if charge.q > -self.sink_threshold:
                continue
            dist = np.hypot(self._pos[:, 0] - charge.x, self._pos[:, 1] - charge.y)
            hit |= dist < self.sink_radius
        return hit
