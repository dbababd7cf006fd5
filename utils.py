""" Texture utilities: logging, the role/extension filename grammar and role set pairing. """

import os
import re
import sys
from typing import Dict, Iterable, List, Optional, Set, Tuple

from settings import ALLOWED_FILE_TYPES, OUTPUT_SUFFIXES, PRIMARY_ROLE, TEXTURE_ROLES

from backend.texture_classes import (MissingRoleSetError, RoleSet, TextureFileName)

from backend.image_lib import close_image


LOG_TYPES: list[str] = ["info", "warn", "error", "skip", "complete"]
# Defines log types; errors and skips are printed to stderr.

def log(message: str, message_kind: LOG_TYPES = "info") -> None:
# Maps different log types.

    if message == "":
        print("")
        return

    if message_kind not in LOG_TYPES:
        message_kind = "info"

    if message_kind == "info":
        print(f"   {message}")
    elif message_kind == "warn":
        print(f"⚠️ {message}")
    elif message_kind == "error":
        print(f"⛔ {message}", file=sys.stderr)
    elif message_kind == "skip":
        print(f"❌ {message}", file=sys.stderr)
    elif message_kind == "complete":
        print(f"✅ {message}")
    else:
        print(message)  # fallback

    # Print styles:
    # info: 3 whitespaces + message
    # warn: ⚠️ + message
    # error: ⛔ + message
    # skip: ❌ + message
    # complete: ✅ + message




#                                           === Filename grammar ===

def _token_pattern(tokens: Iterable[str], *, last_token_only: bool = False) -> "re.Pattern[str]":
# Whole underscore-delimited token, e.g. "_as" matches "wall_as" and "wall_as_2k" but not "wall_ashes".
# With last_token_only the token must end the name: "_bcr" matches "wall_bcr" but not "wall_bcr_co".
    alternatives = "|".join(map(re.escape, sorted((token.lstrip("_").lower() for token in tokens), key=len, reverse=True)))
    lookahead = "$" if last_token_only else "(?=_|$)"
    return re.compile(rf"_({alternatives}){lookahead}", re.IGNORECASE)


_ROLE_BY_TOKEN: Dict[str, str] = {config["suffix"].lstrip("_").lower(): role for role, config in TEXTURE_ROLES.items()}
_ROLE_TOKEN_PATTERN = _token_pattern(config["suffix"] for config in TEXTURE_ROLES.values())
_OUTPUT_TOKEN_PATTERN = _token_pattern(OUTPUT_SUFFIXES, last_token_only=True)


def split_extension(filename: str) -> Tuple[str, str]:
# Returns (name, lowercase extension without the dot).
    name, extension = os.path.splitext(os.path.basename(filename))
    return name, extension.lstrip(".").lower()


def has_allowed_extension(filename: str) -> bool:
    return split_extension(filename)[1] in ALLOWED_FILE_TYPES


def parse_texture_filename(filename: str) -> Optional[TextureFileName]:
# Parses "<stem>_<role>[_<anything>].<ext>"; both role token and extension are case-insensitive.
# When more than one role token is present, the last one decides the role.

    name, extension = split_extension(filename)
    if extension not in ALLOWED_FILE_TYPES:
        return None

    role_matches = list(_ROLE_TOKEN_PATTERN.finditer(name))
    if not role_matches:
        return None
    last_match = role_matches[-1]

    return TextureFileName(
        filename=os.path.basename(filename),
        stem=name[:last_match.start()],
        role=_ROLE_BY_TOKEN[last_match.group(1).lower()],
        extension=extension,
    )


def match_role_files(filenames: Iterable[str], role_suffix: str) -> List[str]:
# Returns filenames fulfilling the role given by its suffix (e.g., "_nohq"), preserving input order.

    role = _ROLE_BY_TOKEN.get(role_suffix.lstrip("_").lower())
    matched_files: List[str] = []
    for filename in filenames:
        parsed = parse_texture_filename(filename)
        if parsed and parsed.role == role:
            matched_files.append(filename)
    return matched_files


def is_output_filename(filename: str) -> bool:
# True for generated maps, e.g., "Wall_NMO.tga" or "wall_bcr.PNG".
# Source maps such as "wall_bcr_co.png" are never treated as outputs.
    name, extension = split_extension(filename)
    if extension not in ALLOWED_FILE_TYPES or parse_texture_filename(filename) is not None:
        return False
    return bool(_OUTPUT_TOKEN_PATTERN.search(name))


def output_filename(stem: str, output_suffix: str, extension: str) -> str:
    return f"{stem}{output_suffix}.{extension}"




#                                           === Pairing ===

def group_files_by_role(filenames: Iterable[str]) -> Dict[str, List[str]]:
# Groups filenames under every role from TEXTURE_ROLES; roles without files get an empty list.

    filenames = list(filenames)
    return {role: match_role_files(filenames, role_config["suffix"]) for role, role_config in TEXTURE_ROLES.items()}


def pair_role_sets(files_by_role: Dict[str, List[str]], directory: str = "") -> List[RoleSet]:
# The primary role list defines the number of sets; shorter lists of the other roles are cycled (index modulo length),
# so a single shared map serves every primary map.
# Raises MissingRoleSetError if any role has no files.

    for role, role_config in TEXTURE_ROLES.items():
        if not files_by_role.get(role):
            raise MissingRoleSetError(role, role_config["suffix"])

    role_sets: List[RoleSet] = []
    for index, primary_filename in enumerate(files_by_role[PRIMARY_ROLE]):
        parsed_primary = parse_texture_filename(primary_filename)
        stem = parsed_primary.stem if parsed_primary else split_extension(primary_filename)[0]

        paths: Dict[str, str] = {}
        for role in TEXTURE_ROLES:
            role_files = files_by_role[role]
            paths[role] = os.path.join(directory, role_files[index % len(role_files)])

        role_sets.append(RoleSet(stem=stem, **paths))
    return role_sets




#                                           === Housekeeping ===

def close_image_files(images: Iterable[Optional[object]]) -> None:
# Safely closes all opened images even if there is an error during image processing.

    processed_ids: Set[int] = set()
    for image in images:
        if image is None:
            continue
        image_id = id(image)
        if image_id in processed_ids:
            continue
        processed_ids.add(image_id)
        try:
            close_image(image) # Function from image_lib
        except (OSError, ValueError):
            pass


def make_output_dir(base_directory: str, folder_name: Optional[str]) -> Optional[str]:
# Creates/returns base_directory/folder_name, or base_directory itself when no folder name is set.
# Returns None if the directory cannot be created.

    base_directory = os.path.abspath(base_directory or ".")
    folder_name = (folder_name or "").strip()
    target_directory = os.path.join(base_directory, folder_name) if folder_name else base_directory
    try:
        os.makedirs(target_directory, exist_ok=True)
    except OSError as error:
        log(f"Failed to create folder '{target_directory}': {error}", "error")
        return None
    return target_directory


def validate_safe_folder_name(raw_folder_name: Optional[str]) -> None:
# Validates that the custom folder name doesn't include unsupported characters.

    folder_name: str = (raw_folder_name or "")
    if folder_name.strip() == "":
        return

    if any(invalid_character in folder_name for invalid_character in '\\/:*?"<>|'):
        log(f"Aborted: invalid folder name '{raw_folder_name}'. It cannot contain \\ / : * ? \" < > |", "error")
        # Prints error.
        raise SystemExit(1)
    return
