"""
Input/Output Manager (HDF5)
Handles the scene mapping contract and saving/loading scenes to .h5 files.

Scene mapping:
    {"charges": [{"x": .., "y": .., "q": ..}, ...], "autoScale": bool, "rangeV": number}
"""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import replace
from importlib.metadata import version, PackageNotFoundError
from typing import Any, Mapping, Optional

import h5py

from electrofield.config import MAX_CHARGE_UC, MAX_RANGE_V
from electrofield.model.charges import DisplaySettings, HeatQuantity, SceneData

logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("electrofield")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"

MALFORMED_NOTICE = "Saved scene was unreadable; started with an empty scene."


class SceneFormatError(ValueError):
    """Raised when a scene mapping does not satisfy the persistence contract."""


def _finite_number(value: Any, name: str) -> float:
    # bool is an int subclass but never a valid coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SceneFormatError(f"'{name}' must be a number, got {value!r}.")
    number = float(value)
    if not math.isfinite(number):
        raise SceneFormatError(f"'{name}' must be finite, got {value!r}.")
    return number


def scene_to_dict(data: SceneData) -> dict[str, Any]:
    return {
        "charges": [{"x": x, "y": y, "q": q} for x, y, q in data.charges],
        "autoScale": data.settings.auto_scale,
        "rangeV": data.settings.range_v,
        "quantity": str(data.settings.quantity),
    }


def scene_from_dict(mapping: Mapping[str, Any]) -> SceneData:
    """
    Validate a scene mapping.

    Raises:
        SceneFormatError: On any missing, mistyped or non-finite field. No
            partially parsed scene is ever returned.
    """
    if not isinstance(mapping, Mapping):
        raise SceneFormatError(f"Scene must be a mapping, got {type(mapping).__name__}.")

    raw_charges = mapping.get("charges", [])
    if not isinstance(raw_charges, (list, tuple)):
        raise SceneFormatError("'charges' must be a list.")

    charges: list[tuple[float, float, float]] = []
    for i, item in enumerate(raw_charges):
        if not isinstance(item, Mapping):
            raise SceneFormatError(f"charges[{i}] must be a mapping.")
        x = _finite_number(item.get("x"), f"charges[{i}].x")
        y = _finite_number(item.get("y"), f"charges[{i}].y")
        q = _finite_number(item.get("q"), f"charges[{i}].q")
        if abs(q) > MAX_CHARGE_UC:
            raise SceneFormatError(f"charges[{i}].q={q} exceeds ±{MAX_CHARGE_UC} µC.")
        charges.append((x, y, q))

    settings = DisplaySettings()
    auto_scale = mapping.get("autoScale", settings.auto_scale)
    if not isinstance(auto_scale, bool):
        raise SceneFormatError(f"'autoScale' must be a bool, got {auto_scale!r}.")

    range_v = _finite_number(mapping.get("rangeV", settings.range_v), "rangeV")
    if range_v <= 0.0 or range_v > MAX_RANGE_V:
        raise SceneFormatError(f"'rangeV' out of range: {range_v}.")

    try:
        quantity = HeatQuantity(mapping.get("quantity", settings.quantity))
    except ValueError as e:
        raise SceneFormatError(f"Unknown heatmap quantity: {mapping.get('quantity')!r}.") from e

    settings = replace(settings, auto_scale=auto_scale, range_v=range_v, quantity=quantity)
    return SceneData(charges=tuple(charges), settings=settings)


def load_scene_or_default(mapping: Any) -> tuple[SceneData, Optional[str]]:
    """
    Parse a loaded mapping, falling back to the empty default scene.

    Returns:
        (scene, notice) where notice is None on success and a user-facing
        message when the input was rejected.
    """
    try:
        return scene_from_dict(mapping), None
    except SceneFormatError as e:
        logger.warning(f"Malformed scene, using default: {e}")
        return SceneData(), MALFORMED_NOTICE


class SceneFileIO:
    @staticmethod
    def save(data: SceneData, filepath: str) -> None:
        logger.info(f"Saving scene to: {filepath}")
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # write-then-rename keeps the previous file intact if writing fails
        tmp_path = f"{filepath}.tmp"
        try:
            with h5py.File(tmp_path, "w") as f:
                f.attrs["version"] = APP_VERSION

                # --- 1. CHARGES ---
                f.attrs["charges_json"] = json.dumps(scene_to_dict(data)["charges"])

                # --- 2. DISPLAY SETTINGS ---
                grp_display = f.create_group("display")
                grp_display.attrs["auto_scale"] = data.settings.auto_scale
                grp_display.attrs["range_v"] = data.settings.range_v
                grp_display.attrs["quantity"] = str(data.settings.quantity)

            os.replace(tmp_path, filepath)
            logger.debug(f"Scene saved ({len(data.charges)} charges).")

        except Exception as e:
            logger.exception(f"Failed to save scene: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @staticmethod
    def read_mapping(filepath: str) -> dict[str, Any]:
        """Read the raw scene mapping without validating it."""
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Scene file not found: {filepath}")
        if not h5py.is_hdf5(filepath):
            msg = f"File '{filepath}' is not a valid HDF5 file."
            logger.error(msg)
            raise SceneFormatError(msg)

        with h5py.File(filepath, "r") as f:
            charges_json = f.attrs.get("charges_json", "[]")
            if isinstance(charges_json, bytes):
                charges_json = charges_json.decode("utf-8")
            try:
                charges = json.loads(charges_json)
            except json.JSONDecodeError as e:
                raise SceneFormatError(f"Corrupt charge list: {e}") from e

            mapping: dict[str, Any] = {"charges": charges}
            if "display" in f:
                attrs = f["display"].attrs
                if "auto_scale" in attrs:
                    mapping["autoScale"] = bool(attrs["auto_scale"])
                if "range_v" in attrs:
                    mapping["rangeV"] = float(attrs["range_v"])
                if "quantity" in attrs:
                    quantity = attrs["quantity"]
                    mapping["quantity"] = quantity.decode("utf-8") if isinstance(quantity, bytes) else str(quantity)
        return mapping

    @staticmethod
    def load(filepath: str) -> SceneData:
        """
        Load and validate a scene file.

        Raises:
            FileNotFoundError: If the file does not exist.
            SceneFormatError: If the file is not a readable scene.
        """
        logger.info(f"Loading scene from: {filepath}")
        data = scene_from_dict(SceneFileIO.read_mapping(filepath))
        logger.info(f"Scene loaded from: {filepath}")
        return data
