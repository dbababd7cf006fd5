""" Filesystem backend: lists the source maps, writes the generated maps and relocates them into the final folder. """

import os

import shutil
from typing import List, Optional
from dataclasses import dataclass, field

from backend.image_lib import (ImageObject, save_image as save_image_file)
from backend.texture_classes import UnsupportedFormatError

from settings import (ALLOWED_FILE_TYPES, IMAGE_FORMATS, OUTPUT_FORMATS, SAVE_OPTIONS)
from utils import (has_allowed_extension, is_output_filename, log, split_extension)


@dataclass
class L2PContext:
    work_directory: str = None # Absolute path holding the input and PBR folders.
    input_directory: str = None # Absolute path of the folder with the legacy maps.
    results_directory: str = None # Absolute path where generated maps are written first.
    export_extensions: List[str] = field(default_factory=list) # Validated output extensions, without the dot.
    written_paths: List[str] = field(default_factory=list) # Every generated file saved during this run.
    failed_sets: List[str] = field(default_factory=list) # Stems of role sets that could not be generated.




#                                     === Legacy2PBR core interface ===




def context_validate_export_extensions(context: "L2PContext" = None, output_formats: Optional[List[str]] = None) -> List[str]:
# Validates the output extensions from the config and stores them in context, without the dot.
# "tiff" is written as "tif"; duplicates are dropped.

    requested_formats = OUTPUT_FORMATS if output_formats is None else output_formats
    export_extensions: List[str] = []

    for requested_format in requested_formats:
        typed_extension: str = (requested_format or "").strip().lower().lstrip(".")
        file_extension: str = "tif" if typed_extension == "tiff" else typed_extension

        if not file_extension or file_extension not in ALLOWED_FILE_TYPES:
            sorted_allowed_file_types = ", ".join(sorted(ALLOWED_FILE_TYPES))
            log(f"Aborted: Invalid OUTPUT_FORMATS entry '{requested_format}'. Supported: {sorted_allowed_file_types}", "error")
            raise SystemExit(1)

        if file_extension not in export_extensions:
            export_extensions.append(file_extension)

    if not export_extensions:
        log("Aborted: OUTPUT_FORMATS is empty.", "error")
        raise SystemExit(1)

    if context is not None:
        context.export_extensions = export_extensions
    return export_extensions


def list_initial_files(input_folder: str, sort_files: bool = True) -> List[str]:
# Lists candidate filenames with a supported extension from input_folder (non-recursive).
# Keeps directory listing order unless sort_files is set.

    if not input_folder or not os.path.isdir(input_folder):
        return []

    root_directory = os.path.abspath(input_folder)
    filenames: List[str] = []

    for filename in os.listdir(root_directory):
        if has_allowed_extension(filename) and os.path.isfile(os.path.join(root_directory, filename)):
            filenames.append(filename)

    if sort_files:
        filenames.sort(key=lambda name: (name.lower(), name))
    return filenames


def save_generated_texture(image: ImageObject, output_directory: str, filename: str, context: Optional["L2PContext"] = None) -> Optional[str]:
# Saves one generated map; the format is taken from the filename's extension.
# Failures are logged and only affect this single file. Returns the written path or None.

    _, file_extension = split_extension(filename)
    output_path = os.path.join(output_directory, filename)

    try:
        image_format = IMAGE_FORMATS.get(file_extension)
        if image_format is None:
            raise UnsupportedFormatError(file_extension)

        os.makedirs(output_directory, exist_ok=True)
        save_image_file(image, output_path, image_format, **SAVE_OPTIONS.get(file_extension, {}))

    except (UnsupportedFormatError, OSError, ValueError) as error:
        log(f"Failed to save '{output_path}': {error}", "error")
        return None

    if context is not None:
        context.written_paths.append(output_path)
    return output_path


def move_file(source_path: str, target_directory: str) -> Optional[str]:
# Moves a file into target_directory, replacing a same named file there. Errors are logged and the move is skipped.

    try:
        if not source_path or not os.path.exists(source_path):
            return None

        os.makedirs(target_directory, exist_ok=True)
        target_path = os.path.join(target_directory, os.path.basename(source_path))

        if os.path.abspath(target_path) == os.path.abspath(source_path):
            return target_path
        if os.path.isfile(target_path):
            os.remove(target_path)
        # Regenerated maps replace the previous run's output.

        shutil.move(source_path, target_path)
        return target_path

    except OSError as error:
        log(f"Warning: failed to move '{source_path}' to '{target_directory}': {error}", "warn")
        return None


def relocate_results(results_directory: str, target_directory: str) -> List[str]:
# Re-scans results_directory for generated NMO/BCR maps and moves them into target_directory.
# Files that don't carry an output suffix with a supported extension are left untouched.

    if not results_directory or not os.path.isdir(results_directory):
        return []

    moved_paths: List[str] = []
    for filename in list_initial_files(results_directory, sort_files=True):
        if not is_output_filename(filename):
            continue
        moved_path = move_file(os.path.join(results_directory, filename), target_directory)
        if moved_path:
            moved_paths.append(moved_path)
    return moved_paths
