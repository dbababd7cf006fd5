""" Image processing backend. Currently implemented using Pillow (PIL) with NumPy for per-pixel arithmetic. PIL exports 8bit images only."""



#                                           === Backend ===

from contextlib import contextmanager
from typing import Any, Iterator, List, Sequence, Tuple, TypeAlias

import numpy as np
from PIL import Image as _PIL
from PIL.Image import Image as PILImage
from PIL import Image as PILImageModule

ImageObject: TypeAlias = PILImage

RESAMPLE_FILTERS: dict[str, int] = {
    "nearest": _PIL.NEAREST,
    "bilinear": _PIL.BILINEAR,
}

_open_images: List[ImageObject] = [] # Handles opened inside the active imaging_session.


@contextmanager
def imaging_session() -> Iterator[None]:
# Registers Pillow codecs for the batch and closes every image opened through open_image when the batch ends,
# including fatal errors and exceptions.

    _PIL.init()
    try:
        yield
    finally:
        leftover_images = list(_open_images)
        _open_images.clear()
        for image in leftover_images:
            close_image(image)


def close_image(image: object) -> None:
    close = getattr(image, "close", None)
    if callable(close):
        close()
    _open_images[:] = [open_image_ for open_image_ in _open_images if open_image_ is not image]
    # Compared by identity; Pillow's == compares pixel data.


def from_array_u8(data: Any, mode: str) -> ImageObject:
# Creates an image from a uint8 numpy array.
    return PILImageModule.fromarray(data, mode)


def to_array_u8(image: ImageObject) -> np.ndarray:
# Returns image pixels as a uint8 numpy array (H x W for single channel images).
    return np.asarray(image, dtype=np.uint8)


def get_channel(image: ImageObject, ch: str) -> ImageObject:
# Extracts a single channel by name ("R","G","B","A","L")
    return image.getchannel(ch.upper())


def get_image_mode(image: Any) -> str:
# Return the Pillow image mode: "RGB", "RGBA", "L"
    return image.mode


def get_size(image: ImageObject) -> Tuple[int, int]:
# Returns the image size as (width, height)
    return image.size


def merge_channels(mode: str, channels: Sequence[Any]) -> ImageObject:
# Merge separate channels into a single image.
    return _PIL.merge(mode, tuple(channels))


def average_channels(channel1: ImageObject, channel2: ImageObject) -> ImageObject:
# Per-pixel floor((a + b) / 2) of two same-sized "L" channels.
    summed = to_array_u8(channel1).astype(np.uint16) + to_array_u8(channel2).astype(np.uint16)
    return from_array_u8((summed // 2).astype(np.uint8), "L")


def open_image(path: str) -> ImageObject:
# Opens and fully decodes the file, so corrupted pixel data fails here rather than during packing.
    image = _PIL.open(path)
    _open_images.append(image)
    try:
        image.load()
    except Exception:
        close_image(image)
        raise
    return image


def resize(image: ImageObject, size: Tuple[int, int], resample_filter: str = "bilinear") -> ImageObject:
# Resize an image using the named resampling filter (bilinear by default).
# Bands are resized separately: Pillow premultiplies RGBA by alpha, which would alter packed data channels.

    resample = RESAMPLE_FILTERS.get(resample_filter, _PIL.BILINEAR)
    if get_image_mode(image) != "RGBA":
        return image.resize(size, resample)
    return merge_channels("RGBA", [band.resize(size, resample) for band in image.split()])


def save_image(image: Any, path: str, image_format: str, **save_options: Any) -> None:
    image.save(path, format=image_format, **save_options)




#                                           === Utils ===



def convert_to_rgba(image: ImageObject) -> ImageObject:
# Normalizes any decoded image to 8-bit RGBA. RGB gets an opaque alpha, grayscale is expanded to all color channels.
# Returns the same object if it already is RGBA.

    mode = get_image_mode(image)
    if mode == "RGBA":
        return image
    if mode == "I" or str(mode).startswith("I;16"):
        return _16_to_8bit(image).convert("RGBA")
    return image.convert("RGBA")
    # Palette images keep their transparency info when converted directly.


def _16_to_8bit(image: ImageObject) -> ImageObject:
# Scales down 16bit range to a 8bit, so values are properly maintained instead of being clipped.

# Preparing the image:
    if image.mode == "I":
        img16 = image.convert("I;16")
    elif image.mode in ("I;16", "I;16L", "I;16B"):
        img16 = image if image.mode == "I;16" else image.convert("I;16")
    # Normalizes the image type to 16bit LE.
    else:
        return image.convert("L")
    # If the image is just 8bit grayscale, passes it though.

    width, height = img16.size
    data16 = np.frombuffer(img16.tobytes("raw", "I;16"), dtype="<u2").reshape(height, width)  # LE 16bit

# Scaling:
    return from_array_u8((data16 >> 8).astype(np.uint8), "L")
