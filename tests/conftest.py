import os
from typing import Callable, Tuple

import pytest
from PIL import Image


def pattern_image(size: Tuple[int, int], seed: int, mode: str = "RGBA") -> Image.Image:
# Image whose channels all differ from each other and between pixels.
    width, height = size
    channel_count = len(mode)
    data = bytes((seed * 31 + index * 7 + channel * 53) % 256
                 for index in range(width * height)
                 for channel in range(channel_count))
    return Image.frombytes(mode, size, data)


@pytest.fixture
def write_image() -> Callable[..., str]:
    def _write(directory, filename: str, color=(0, 0, 0, 255), size=(4, 4), mode: str = "RGBA", image: Image.Image = None) -> str:
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, filename)
        (image or Image.new(mode, size, color)).save(path)
        return path
    return _write


@pytest.fixture
def work_dir(tmp_path, monkeypatch):
# Work directory with an empty TGA_Result input folder and config independent settings.
    import legacy2pbr

    monkeypatch.setattr(legacy2pbr, "INPUT_FOLDER_NAME", "TGA_Result")
    monkeypatch.setattr(legacy2pbr, "RESULTS_FOLDER_NAME", "")
    monkeypatch.setattr(legacy2pbr, "PBR_FOLDER_NAME", "PBR_Result")
    monkeypatch.setattr(legacy2pbr, "OUTPUT_FORMATS", ["png"])
    monkeypatch.setattr(legacy2pbr, "NMO_ALPHA_SOURCE", "ambient_shadow")
    monkeypatch.setattr(legacy2pbr, "RESIZE_FILTER", "bilinear")
    monkeypatch.setattr(legacy2pbr, "SORT_FILES", True)
    monkeypatch.setattr(legacy2pbr, "ABORT_ON_DECODE_FAILURE", False)
    monkeypatch.setattr(legacy2pbr, "SHOW_DETAILS", False)
    (tmp_path / "TGA_Result").mkdir()
    return tmp_path
