from typing import Optional, Tuple, TypedDict
from dataclasses import dataclass

from PIL.Image import Image as PILImage


class TextureRoleConfig(TypedDict):
    suffix: str # Role token in the filename, e.g., "_nohq".
    description: str # Human-readable role name used in logs.


@dataclass
class TextureFileName:
    filename: str # Original case-sensitive filename.
    stem: str # Case-sensitive name preceding the last role token, e.g., "Wall" for "Wall_nohq.tga".
    role: str # Role key from TEXTURE_ROLES, e.g., "normal_height".
    extension: str # Lowercase extension without the dot.

@dataclass
class RoleSet:
    stem: str # Shared name used for the output files, taken from the primary (nohq) file.
    normal_height: str # Path to the _nohq map; primary role defining the output resolution.
    specular_gloss: str # Path to the _smdi map.
    ambient_shadow: str # Path to the _as map.
    base_color: str # Path to the _co map.

@dataclass
class OutputPair:
    stem: str # Output filename stem.
    nmo: PILImage # Normal / material / occlusion packed map.
    bcr: PILImage # Base color / roughness packed map.

    @property
    def resolution(self) -> Tuple[int, int]:
        return self.nmo.size




#                                           === Errors ===

class Legacy2PBRError(Exception):
    pass


class MissingRoleSetError(Legacy2PBRError):
# None of the listed files fulfils a required role; aborts the whole run.

    def __init__(self, role: str, suffix: str):
        super().__init__(f"No input files found for role '{role}' (suffix '{suffix}').")
        self.role = role
        self.suffix = suffix


class DecodeFailureError(Legacy2PBRError):

    def __init__(self, path: str, reason: Optional[str] = None):
        details = f": {reason}" if reason else ""
        super().__init__(f"Cannot decode '{path}'{details}")
        self.path = path


class DimensionMismatchError(Legacy2PBRError):
# Raised when a non-resizable role does not match the primary map's resolution.

    def __init__(self, path: str, expected: Tuple[int, int], actual: Tuple[int, int]):
        super().__init__(f"'{path}' is {actual[0]}x{actual[1]}, expected {expected[0]}x{expected[1]}.")
        self.path = path
        self.expected = expected
        self.actual = actual


class UnsupportedFormatError(Legacy2PBRError):

    def __init__(self, extension: str):
        super().__init__(f"Unsupported output format '{extension}'.")
        self.extension = extension
