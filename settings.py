""" Legacy2PBR settings. """

import json
import os
from typing import Any, Dict, List, Tuple

from backend.texture_classes import TextureRoleConfig


def _as_bool(v) -> bool:
# Converts .json input (bool/int/str/None) to a real bool;
# Avoids the case where a non-empty string like "False" is treated as True.

    if isinstance(v, bool): return v
    if isinstance(v, str):
        input_str = v.strip().lower()
        if input_str == "": return False
        return input_str in ("1","true","yes","on")
    return bool(v)


def _as_list(v) -> List[str]:
# Accepts either a single "png" string or a ["tga", "png"] list from .json.

    if v is None: return []
    if isinstance(v, str): return [part.strip() for part in v.split(",") if part.strip()]
    return [str(part).strip() for part in v if str(part).strip()]



#                                           === Loading JSON file ===

_config_path = os.path.join(os.path.dirname(__file__), "config.json")
_config_data: Dict[str, Any] = {}
if os.path.isfile(_config_path):
    with open(_config_path, "r", encoding="utf-8") as f:
        _config_data = json.load(f)
# Runs with the defaults below when no config.json is present.


# Assigning config values:
WORK_DIRECTORY: str = (_config_data.get("WORK_DIRECTORY") or "").strip() # Root folder holding the input and PBR folders; empty uses the current directory.
INPUT_FOLDER_NAME: str = (_config_data.get("INPUT_FOLDER_NAME") or "TGA_Result").strip() # Subfolder of the work directory containing the legacy maps.
RESULTS_FOLDER_NAME: str = (_config_data.get("RESULTS_FOLDER_NAME") or "").strip() # If provided, writes NMO/BCR maps into this subfolder of the work directory instead of the input folder.
PBR_FOLDER_NAME: str = (_config_data.get("PBR_FOLDER_NAME", "PBR_Result") or "").strip() # Final folder the generated maps are moved into; empty disables the move.
OUTPUT_FORMATS: List[str] = _as_list(_config_data.get("OUTPUT_FORMATS", ["tga", "tif", "png"])) # File types written for every generated map.
NMO_ALPHA_SOURCE: str = (_config_data.get("NMO_ALPHA_SOURCE") or "ambient_shadow").strip().lower() # "ambient_shadow": copies AS green; "average": mean of AS green and NOHQ blue.
RESIZE_FILTER: str = (_config_data.get("RESIZE_FILTER") or "bilinear").strip().lower() # Filter used when the AS map resolution differs from the NOHQ map: "bilinear" or "nearest".
SORT_FILES: bool = _as_bool(_config_data.get("SORT_FILES", True)) # Sorts matched files by name before pairing; otherwise uses directory listing order.
ABORT_ON_DECODE_FAILURE: bool = _as_bool(_config_data.get("ABORT_ON_DECODE_FAILURE", False)) # Stops the whole batch on the first set that cannot be decoded instead of skipping it. Covers size mismatches of the smdi/co maps too.

SHOW_DETAILS: bool = _as_bool(_config_data.get("SHOW_DETAILS", False)) # Shows details like exact resolution when printing logs.




#                                           === Constants ===

ALLOWED_FILE_TYPES: Tuple[str, ...] = ("tga", "tif", "tiff", "png")
NMO_ALPHA_SOURCES: Tuple[str, ...] = ("ambient_shadow", "average")
PRIMARY_ROLE: str = "normal_height"

TEXTURE_ROLES: dict[str, TextureRoleConfig] = {
    "normal_height": {"suffix": "_nohq", "description": "normal/height"},
    "specular_gloss": {"suffix": "_smdi", "description": "specular/gloss"},
    "ambient_shadow": {"suffix": "_as", "description": "ambient/shadow"},
    "base_color": {"suffix": "_co", "description": "base color"}}
# Insertion order is the order roles are reported in logs; the primary role comes first.

OUTPUT_SUFFIXES: Tuple[str, ...] = ("_NMO", "_BCR")

IMAGE_FORMATS: dict[str, str] = {"tga": "TGA", "tif": "TIFF", "tiff": "TIFF", "png": "PNG"}
# Maps file extensions to Pillow format names.

SAVE_OPTIONS: dict[str, dict[str, Any]] = {
    "tga": {"compression": None},
    "tif": {"compression": "raw"},
    "tiff": {"compression": "raw"},
    "png": {"compress_level": 0}}
# Fixed per-format encoder flags: uncompressed output for every format.
