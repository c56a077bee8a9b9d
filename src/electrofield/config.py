"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: It keeps physics constants, canvas geometry and interaction
   tuning in one place instead of scattering magic numbers through the code.
2. Persistence: It resolves where the local scene file lives, honouring the
   ELECTROFIELD_DATA_DIR environment override.

Exports:
    LOCAL_SCENE_PATH (str): Absolute path of the auto-saved local scene file.
"""
import os
from pathlib import Path


def get_data_dir() -> str:
    """
    Get the directory used for local scene storage.

    The ELECTROFIELD_DATA_DIR environment variable wins over the default
    (~/.electrofield).
    """
    override = os.environ.get("ELECTROFIELD_DATA_DIR")
    if override:
        return str(Path(override).expanduser())
    return str(Path.home() / ".electrofield")


# --- Physics ---
COULOMB_CONSTANT: float = 8.9875517923e9  # N·m²/C²
MICRO: float = 1e-6  # charges are entered in µC

# Minimum distance substituted for |p - p_i| in the solver. A numerical
# stability knob, not a physical charge radius: it bounds V and E at a
# charge's center so colors and vectors stay finite.
SOFTENING_RADIUS: float = 0.03  # m

# --- Canvas / world geometry ---
CANVAS_WIDTH_PX: int = 960
CANVAS_HEIGHT_PX: int = 664
PIXELS_PER_METER: float = 200.0
WORLD_WIDTH: float = CANVAS_WIDTH_PX / PIXELS_PER_METER  # m
WORLD_HEIGHT: float = CANVAS_HEIGHT_PX / PIXELS_PER_METER  # m

# Sample grid (half the canvas resolution)
GRID_NX: int = 480
GRID_NY: int = 332

GLYPH_SPACING_PX: int = 40

# --- Charges ---
DEFAULT_CHARGE_UC: float = 1.0
MAX_CHARGE_UC: float = 1000.0
CHARGE_DRAW_RADIUS_PX: float = 12.0

# --- Display range ---
DEFAULT_RANGE_V: float = 1.0e5
MAX_RANGE_V: float = 1.0e12
AUTO_SCALE_FALLBACK: float = 1.0

# --- Interaction ---
MOUSE_HIT_RADIUS_PX: float = 14.0
TOUCH_HIT_RADIUS_PX: float = 22.0  # finger contact area, >= 1.4x mouse

# --- Flow carriers ---
CARRIERS_PER_SOURCE: int = 12
CARRIER_SPEED: float = 0.012  # m per frame
CARRIER_SPEED_EMPHASIS: float = 0.5
CARRIER_MAX_AGE: int = 600  # frames
CARRIER_SEED_RADIUS: float = 0.06  # m
SINK_RADIUS: float = 0.05  # m
SINK_THRESHOLD_UC: float = 0.05
STAGNATION_FIELD: float = 1e-3  # V/m

# --- Timing ---
FRAME_INTERVAL_MS: int = 16
SETTINGS_DEBOUNCE_MS: int = 250
PERSIST_INTERVAL_MS: int = 1000

# --- Color ramps (position, (r, g, b)) ---
WARM_RAMP: tuple[tuple[float, tuple[int, int, int]], ...] = (
    (0.0, (12, 12, 20)),
    (0.35, (120, 20, 40)),
    (0.7, (230, 90, 40)),
    (1.0, (255, 240, 170)),
)
COOL_RAMP: tuple[tuple[float, tuple[int, int, int]], ...] = (
    (0.0, (12, 12, 20)),
    (0.35, (20, 40, 120)),
    (0.7, (30, 140, 230)),
    (1.0, (190, 245, 255)),
)

# Global Paths
DATA_DIR: str = get_data_dir()
LOCAL_SCENE_PATH: str = os.path.join(DATA_DIR, "scene.h5")
