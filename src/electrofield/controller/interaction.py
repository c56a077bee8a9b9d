"""
Interaction Controller
======================
Input-source-agnostic pointer protocol (down / move / up) that drags,
duplicates, places and measures charges.

Why is this file needed?
------------------------
1. Unification: Mouse, touch and pen events are converted once by the canvas
   into PointerEvent records; everything below that line ignores the device,
   apart from the hit radius.
2. Side effects: The only outputs are Scene Model calls and the transient
   measurement overlay. This module never paints.

Classes:
    CanvasTransform: canvas pixels <-> world meters.
    InteractionController: gesture state machine.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from electrofield.config import (
    DEFAULT_CHARGE_UC,
    MOUSE_HIT_RADIUS_PX,
    PIXELS_PER_METER,
    TOUCH_HIT_RADIUS_PX,
)
from electrofield.solver.field import FieldSample, field_at

if TYPE_CHECKING:
    from electrofield.model.charges import Charge
    from electrofield.model.state import SceneModel

logger = logging.getLogger(__name__)


class PointerSource(StrEnum):
    MOUSE = "mouse"
    TOUCH = "touch"
    PEN = "pen"


class GestureKind(StrEnum):
    NONE = "none"
    DRAG = "drag"
    DUPLICATE = "duplicate"
    MEASURE = "measure"


class ToolMode(StrEnum):
    EDIT = "edit"
    MEASURE = "measure"


@dataclass(frozen=True)
class PointerEvent:
    """A pointer-down in world coordinates, already device-normalized."""
    source: PointerSource
    point: tuple[float, float]
    duplicate: bool = False
    pointer_id: int = 0


@dataclass
class PointerState:
    pointer_ids: set[int] = field(default_factory=set)
    source: PointerSource | None = None
    drag_id: int | None = None
    kind: GestureKind = GestureKind.NONE
    start: tuple[float, float] | None = None
    current: tuple[float, float] | None = None
    moved: bool = False
    placed: bool = False


@dataclass(frozen=True)
class Measurement:
    start: tuple[float, float]
    end: tuple[float, float]
    sample: FieldSample

    @property
    def distance(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])


class CanvasTransform:
    """
    Maps canvas pixels to world meters.

    Native events report device pixels on high-DPI screens; dividing by the
    device pixel ratio yields logical pixels, and the scale yields meters.
    The y axis points down in both spaces.
    """
    def __init__(self, pixels_per_meter: float = PIXELS_PER_METER, device_pixel_ratio: float = 1.0) -> None:
        if pixels_per_meter <= 0 or device_pixel_ratio <= 0:
            raise ValueError("Scale and device pixel ratio must be positive.")
        self.pixels_per_meter = pixels_per_meter
        self.device_pixel_ratio = device_pixel_ratio

    def to_world(self, px: float, py: float) -> tuple[float, float]:
        scale = self.device_pixel_ratio * self.pixels_per_meter
        return px / scale, py / scale

    def to_device(self, x: float, y: float) -> tuple[float, float]:
        """Inverse of to_world: world meters to device pixels."""
        scale = self.device_pixel_ratio * self.pixels_per_meter
        return x * scale, y * scale

    def to_canvas(self, x: float, y: float) -> tuple[float, float]:
        """
        World meters to logical canvas pixels, the space QPainter draws in.
        Ignores the device pixel ratio.
        """
        return x * self.pixels_per_meter, y * self.pixels_per_meter

    def pixels_to_meters(self, px: float) -> float:
        return px / self.pixels_per_meter


class InteractionController:
    def __init__(self, scene: SceneModel, transform: CanvasTransform | None = None) -> None:
        self.scene = scene
        self.transform = transform if transform is not None else CanvasTransform()
        self.mode = ToolMode.EDIT
        self.placement_charge = DEFAULT_CHARGE_UC
        self.pointer_state = PointerState()
        self.measurement: Measurement | None = None

    # ---- configuration ----

    def set_mode(self, mode: ToolMode) -> None:
        self.mode = ToolMode(mode)
        self.measurement = None
        self.pointer_state = PointerState()

    def hit_radius(self, source: PointerSource) -> float:
        """Hit radius in meters; touch gets the larger one."""
        px = TOUCH_HIT_RADIUS_PX if source == PointerSource.TOUCH else MOUSE_HIT_RADIUS_PX
        return self.transform.pixels_to_meters(px)

    def hit_test(self, point: tuple[float, float], source: PointerSource) -> Charge | None:
        """Topmost (most recently created) charge within the hit radius."""
        radius = self.hit_radius(source)
        for charge in reversed(self.scene.charges):
            if charge.distance_to(point[0], point[1]) <= radius:
                return charge
        return None

    # ---- pointer protocol ----

    def pointer_down(self, event: PointerEvent) -> None:
        state = self.pointer_state
        if state.kind != GestureKind.NONE:
            # an extra finger landing mid-gesture only joins the gesture
            state.pointer_ids.add(event.pointer_id)
            return

        self.pointer_state = state = PointerState(
            pointer_ids={event.pointer_id},
            source=event.source,
            start=event.point,
            current=event.point,
        )
        hit = self.hit_test(event.point, event.source)

        if hit is not None:
            if event.duplicate:
                copy = self.scene.duplicate_charge(hit.id)
                state.drag_id = copy.id if copy is not None else None
                state.kind = GestureKind.DUPLICATE
            else:
                state.drag_id = hit.id
                state.kind = GestureKind.DRAG
                self.scene.select(hit.id)
            return

        if self.mode == ToolMode.MEASURE:
            state.kind = GestureKind.MEASURE
            self._update_measurement(event.point)
            return

        if event.duplicate:
            # nothing under the pointer to copy
            return
        try:
            placed = self.scene.add_charge(event.point[0], event.point[1], self.placement_charge)
        except ValueError as e:
            logger.warning(f"Could not place charge: {e}")
            return
        logger.debug(f"Placed charge {placed.id} via {event.source}.")
        state.drag_id = placed.id
        state.kind = GestureKind.DRAG
        state.placed = True

    def add_pointer(self, pointer_id: int) -> None:
        """
        A further pointer joined the active gesture.

        While a charge picked up by a hit-test has not moved yet, the extra
        pointer turns the drag into a duplicate of that charge. Freshly placed
        charges are never copied.
        """
        state = self.pointer_state
        if (
            state.kind == GestureKind.DRAG
            and not state.moved
            and not state.placed
            and state.start is not None
            and state.source is not None
        ):
            primary = min(state.pointer_ids) if state.pointer_ids else 0
            start, source = state.start, state.source
            self.pointer_up()
            self.pointer_down(PointerEvent(source=source, point=start, duplicate=True, pointer_id=primary))
        self.pointer_state.pointer_ids.add(pointer_id)

    def pointer_move(self, point: tuple[float, float]) -> None:
        state = self.pointer_state
        if state.kind == GestureKind.NONE:
            return
        state.current = point

        if state.drag_id is not None:
            if self.scene.move_charge(state.drag_id, point[0], point[1]):
                state.moved = True
        elif state.kind == GestureKind.MEASURE:
            self._update_measurement(point)

    def pointer_up(self) -> None:
        state = self.pointer_state
        if state.drag_id is not None and state.moved:
            self.scene.commit_edit()
        self.pointer_state = PointerState()

    # ---- internals ----

    def _update_measurement(self, point: tuple[float, float]) -> None:
        start = self.pointer_state.start if self.pointer_state.start is not None else point
        self.measurement = Measurement(
            start=start,
            end=point,
            sample=field_at(self.scene.charges, point[0], point[1]),
        )
