""" Converts legacy _nohq/_smdi/_as/_co texture maps into channel-packed _NMO and _BCR maps. """

import os
import sys
import time
from typing import Dict, List, Optional, Tuple


from backend.image_lib import (RESAMPLE_FILTERS, ImageObject, average_channels, convert_to_rgba, get_channel, get_size,
                               imaging_session, merge_channels, open_image, resize)

from backend.texture_classes import (DecodeFailureError, DimensionMismatchError, Legacy2PBRError,
                                     MissingRoleSetError, OutputPair, RoleSet)

from backend.io_backend import (L2PContext, context_validate_export_extensions, list_initial_files,
                                relocate_results, save_generated_texture)

from settings import (ABORT_ON_DECODE_FAILURE, INPUT_FOLDER_NAME, NMO_ALPHA_SOURCE, NMO_ALPHA_SOURCES, OUTPUT_FORMATS,
                      OUTPUT_SUFFIXES, PBR_FOLDER_NAME, PRIMARY_ROLE, RESIZE_FILTER, RESULTS_FOLDER_NAME, SHOW_DETAILS,
                      SORT_FILES, TEXTURE_ROLES, WORK_DIRECTORY)

from utils import (close_image_files, group_files_by_role, log, make_output_dir, output_filename,
                   pair_role_sets, validate_safe_folder_name)




# Channel layout of the generated maps (source role, source channel):
#   NMO: R = smdi.G, G = nohq.G, B = nohq.B, A = as.G (or mean of as.G and nohq.B, see NMO_ALPHA_SOURCE)
#   BCR: R = co.R,   G = co.G,   B = co.B,   A = smdi.B

NMO_CHANNELS: Tuple[Tuple[str, str], ...] = (("specular_gloss", "G"), ("normal_height", "G"), ("normal_height", "B"), ("ambient_shadow", "G"))
BCR_CHANNELS: Tuple[Tuple[str, str], ...] = (("base_color", "R"), ("base_color", "G"), ("base_color", "B"), ("specular_gloss", "B"))




#                                           === Pipeline ===


def legacy2pbr(work_directory: Optional[str] = None) -> L2PContext:
# Runs the whole batch: matches the legacy maps, generates NMO/BCR for every role set and moves the results.
# Aborts with SystemExit(1) on invalid config or a missing role; failed sets are collected in context.failed_sets.

    context = L2PContext() # Context object holding the runtime state for the current run.
    start_time = time.time()


# Validating config and resolving folders:
    _validate_config(context)

    context.work_directory = os.path.abspath(work_directory or WORK_DIRECTORY or ".")
    context.input_directory = os.path.join(context.work_directory, INPUT_FOLDER_NAME)
    if not os.path.isdir(context.input_directory):
        log(f"Aborted: Input folder does not exist: {context.input_directory}", "error")
        raise SystemExit(1)


# Matching files into role sets:
    filenames: List[str] = list_initial_files(context.input_directory, sort_files=SORT_FILES)
    files_by_role: Dict[str, List[str]] = group_files_by_role(filenames)

    try:
        role_sets: List[RoleSet] = pair_role_sets(files_by_role, context.input_directory)
    except MissingRoleSetError as error:
        log(f"Aborted: {error} Searched in: {context.input_directory}", "error")
        raise SystemExit(1)

    if SHOW_DETAILS:
        for role, role_config in TEXTURE_ROLES.items():
            log(f"Found {len(files_by_role[role])} {role_config['description']} map(s) ({role_config['suffix']}).", "info")


    results_directory = make_output_dir(context.work_directory, RESULTS_FOLDER_NAME) if RESULTS_FOLDER_NAME else context.input_directory
    if results_directory is None:
        raise SystemExit(1)
    context.results_directory = results_directory


# Generating the maps:
    with imaging_session():
        for role_set in role_sets:
            log(f"\nProcessing: {role_set.stem}", "info")

            try:
                output_pair = generate_output_pair(role_set, nmo_alpha_source=NMO_ALPHA_SOURCE, resize_filter=RESIZE_FILTER)
            except Legacy2PBRError as error:
                context.failed_sets.append(role_set.stem)
                if ABORT_ON_DECODE_FAILURE:
                    log(f"Aborted: {error}", "error")
                    raise SystemExit(1)
                log(f"Skipped '{role_set.stem}': {error}", "skip")
                continue

            try:
                written_filenames = _write_output_pair(output_pair, results_directory, context)
            finally:
                close_image_files([output_pair.nmo, output_pair.bcr])

            if written_filenames:
                details = f" ({output_pair.resolution[0]}x{output_pair.resolution[1]})" if SHOW_DETAILS else ""
                log(f"Created: {', '.join(written_filenames)}{details}", "complete")


# Moving the generated maps into the final folder:
    if PBR_FOLDER_NAME and context.written_paths:
        pbr_directory = os.path.join(context.work_directory, PBR_FOLDER_NAME)
        moved_paths = relocate_results(results_directory, pbr_directory)
        if moved_paths:
            log(f"Generated maps moved to: {pbr_directory}", "info")


    log("", "info")  # Visual separator
    if context.failed_sets:
        log(f"Finished with {len(context.failed_sets)} failed set(s): {', '.join(context.failed_sets)}", "warn")
    else:
        log("All processing done.", "complete")

    if SHOW_DETAILS:
        elapsed_time = time.time() - start_time
        log(f"Execution time: {elapsed_time:.2f} seconds", "info")
        # Prints info.

    return context




#                                       === Validation ===

def _validate_config(context: Optional[L2PContext] = None) -> None:
# Validates folder names, output formats and packing policies before touching any files.

    validate_safe_folder_name(INPUT_FOLDER_NAME)
    validate_safe_folder_name(RESULTS_FOLDER_NAME)
    validate_safe_folder_name(PBR_FOLDER_NAME)
    # Checks if folder names don't contain unsupported characters.

    context_validate_export_extensions(context, OUTPUT_FORMATS)

    if NMO_ALPHA_SOURCE not in NMO_ALPHA_SOURCES:
        log(f"Aborted: Unknown NMO_ALPHA_SOURCE '{NMO_ALPHA_SOURCE}'. Supported: {', '.join(NMO_ALPHA_SOURCES)}", "error")
        raise SystemExit(1)

    if RESIZE_FILTER not in RESAMPLE_FILTERS:
        log(f"Warning: Unknown RESIZE_FILTER '{RESIZE_FILTER}'. Defaulting to 'bilinear'.", "warn")
        # Prints Warning.
    return




#                                              === Generation ===

def _load_role_image(path: str) -> ImageObject:
# Decodes a role map and normalizes it to 8-bit RGBA.

    try:
        image = open_image(path)
    except (OSError, ValueError) as error:
        raise DecodeFailureError(path, str(error)) from error
    # Pillow raises UnidentifiedImageError (an OSError) for unknown formats.

    try:
        rgba_image = convert_to_rgba(image)
    except (OSError, ValueError) as error:
        close_image_files([image])
        raise DecodeFailureError(path, str(error)) from error

    if rgba_image is not image:
        close_image_files([image])
    return rgba_image


def generate_output_pair(role_set: RoleSet, *, nmo_alpha_source: str = "ambient_shadow", resize_filter: str = "bilinear") -> OutputPair:
# Loads the four role maps, matches them to the primary map's resolution and packs NMO/BCR.
# The AS map is resampled if needed; smdi/co maps must already match the primary map.
# Every decoded image of the set is closed before returning or raising.

    loaded_images: List[ImageObject] = []
    role_images: Dict[str, ImageObject] = {}

    try:
        for role in TEXTURE_ROLES:
            path: str = getattr(role_set, role)
            image = _load_role_image(path)
            loaded_images.append(image)
            role_images[role] = image

        target_resolution: Tuple[int, int] = get_size(role_images[PRIMARY_ROLE])

        if get_size(role_images["ambient_shadow"]) != target_resolution:
            if SHOW_DETAILS:
                width, height = get_size(role_images["ambient_shadow"])
                log(f"Resizing AS map {width}x{height} to {target_resolution[0]}x{target_resolution[1]}.", "info")
            resized_image = resize(role_images["ambient_shadow"], target_resolution, resize_filter)
            loaded_images.append(resized_image)
            role_images["ambient_shadow"] = resized_image

        for role in ("specular_gloss", "base_color"):
            actual_resolution = get_size(role_images[role])
            if actual_resolution != target_resolution:
                raise DimensionMismatchError(getattr(role_set, role), target_resolution, actual_resolution)

        nmo, bcr = repack_channels(
            role_images["normal_height"],
            role_images["specular_gloss"],
            role_images["ambient_shadow"],
            role_images["base_color"],
            nmo_alpha_source=nmo_alpha_source,
        )
        return OutputPair(stem=role_set.stem, nmo=nmo, bcr=bcr)

    finally:
        close_image_files(loaded_images)


def repack_channels(normal_height: ImageObject, specular_gloss: ImageObject, ambient_shadow: ImageObject, base_color: ImageObject,
                    *, nmo_alpha_source: str = "ambient_shadow") -> Tuple[ImageObject, ImageObject]:
# Packs same-sized RGBA maps into (NMO, BCR) by plain per-channel copies, see NMO_CHANNELS/BCR_CHANNELS.
# With nmo_alpha_source="average" NMO alpha is floor((as.G + nohq.B) / 2) instead of as.G.

    role_images: Dict[str, ImageObject] = {
        "normal_height": normal_height,
        "specular_gloss": specular_gloss,
        "ambient_shadow": ambient_shadow,
        "base_color": base_color,
    }

    nmo_channels: List[ImageObject] = [get_channel(role_images[role], channel) for role, channel in NMO_CHANNELS]
    if nmo_alpha_source == "average":
        nmo_channels[3] = average_channels(nmo_channels[3], get_channel(normal_height, "B"))

    bcr_channels: List[ImageObject] = [get_channel(role_images[role], channel) for role, channel in BCR_CHANNELS]

    try:
        return merge_channels("RGBA", nmo_channels), merge_channels("RGBA", bcr_channels)
    finally:
        close_image_files(nmo_channels + bcr_channels)


def _write_output_pair(output_pair: OutputPair, results_directory: str, context: L2PContext) -> List[str]:
# Saves NMO and BCR in every export extension. Returns the filenames that were written.

    written_filenames: List[str] = []
    for output_suffix, image in zip(OUTPUT_SUFFIXES, (output_pair.nmo, output_pair.bcr)):
        for file_extension in context.export_extensions:
            filename = output_filename(output_pair.stem, output_suffix, file_extension)
            if save_generated_texture(image, results_directory, filename, context):
                written_filenames.append(filename)
    return written_filenames




#                                         === CLI entry point ===

def main() -> None:
    cli_arg = " ".join(sys.argv[1:]).strip() or None
    # Allows a CLI path to override WORK_DIRECTORY.
    work_directory = (cli_arg or WORK_DIRECTORY or "").strip() or os.getcwd()
    if not os.path.isdir(work_directory):
        log(f"Aborted: Work directory does not exist: {work_directory}", "error")
        # Prints error.
        sys.exit(1)

    context = legacy2pbr(work_directory)
    sys.exit(1 if context.failed_sets else 0)

if __name__ == "__main__":
    main()
