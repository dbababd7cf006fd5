import os
import shutil

import pytest
from PIL import Image

from backend.io_backend import (L2PContext, context_validate_export_extensions, list_initial_files,
                                move_file, relocate_results, save_generated_texture)


def test_export_extensions_are_normalized():
    context = L2PContext()
    assert context_validate_export_extensions(context, [".TGA", "tiff", "tif", "png"]) == ["tga", "tif", "png"]
    assert context.export_extensions == ["tga", "tif", "png"]


@pytest.mark.parametrize("output_formats", [["jpg"], []])
def test_invalid_export_extensions_abort(output_formats):
    with pytest.raises(SystemExit) as error:
        context_validate_export_extensions(None, output_formats)
    assert error.value.code == 1


def test_list_initial_files_filters_and_sorts(tmp_path, write_image):
    for filename in ("b_nohq.png", "A_nohq.TGA", "c_nohq.tif"):
        write_image(tmp_path, filename)
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "folder.png").mkdir()

    assert list_initial_files(str(tmp_path)) == ["A_nohq.TGA", "b_nohq.png", "c_nohq.tif"]
    assert sorted(list_initial_files(str(tmp_path), sort_files=False)) == sorted(["A_nohq.TGA", "b_nohq.png", "c_nohq.tif"])
    assert list_initial_files(str(tmp_path / "missing")) == []


@pytest.mark.parametrize("extension", ["tga", "tif", "png"])
def test_save_generated_texture_formats(tmp_path, extension):
    context = L2PContext()
    image = Image.new("RGBA", (4, 4), (1, 2, 3, 4))
    output_directory = str(tmp_path / "out")

    path = save_generated_texture(image, output_directory, f"wall_NMO.{extension}", context)

    assert path == os.path.join(output_directory, f"wall_NMO.{extension}")
    assert context.written_paths == [path]
    with Image.open(path) as written:
        assert written.convert("RGBA").getpixel((3, 3)) == (1, 2, 3, 4)


def test_save_generated_texture_unsupported_format_is_local(tmp_path, capsys):
    context = L2PContext()
    image = Image.new("RGBA", (2, 2))

    assert save_generated_texture(image, str(tmp_path), "wall_NMO.bmp", context) is None
    assert context.written_paths == []
    assert not os.path.exists(tmp_path / "wall_NMO.bmp")
    assert "Unsupported output format 'bmp'" in capsys.readouterr().err


def test_relocate_moves_only_generated_maps(tmp_path, write_image):
    results_directory = tmp_path / "TGA_Result"
    target_directory = tmp_path / "PBR_Result"
    for filename in ("wall_NMO.tga", "wall_BCR.tga", "wall_nohq.tga"):
        write_image(results_directory, filename)
    (results_directory / "wall_NMO.jpg").write_bytes(b"x")
    (results_directory / "notes.txt").write_text("x")

    moved_paths = relocate_results(str(results_directory), str(target_directory))

    assert sorted(os.path.basename(path) for path in moved_paths) == ["wall_BCR.tga", "wall_NMO.tga"]
    assert sorted(os.listdir(target_directory)) == ["wall_BCR.tga", "wall_NMO.tga"]
    assert sorted(os.listdir(results_directory)) == ["notes.txt", "wall_NMO.jpg", "wall_nohq.tga"]


def test_move_file_replaces_existing_target(tmp_path):
    source_directory = tmp_path / "a"
    target_directory = tmp_path / "b"
    source_directory.mkdir()
    target_directory.mkdir()
    (source_directory / "wall_NMO.png").write_bytes(b"new")
    (target_directory / "wall_NMO.png").write_bytes(b"old")

    moved_path = move_file(str(source_directory / "wall_NMO.png"), str(target_directory))

    assert moved_path == str(target_directory / "wall_NMO.png")
    assert (target_directory / "wall_NMO.png").read_bytes() == b"new"
    assert not (source_directory / "wall_NMO.png").exists()


def test_move_file_skips_missing_source(tmp_path):
    assert move_file(str(tmp_path / "missing_NMO.png"), str(tmp_path / "out")) is None
    assert not (tmp_path / "out").exists()


def test_relocate_leaves_source_maps_with_output_tokens(tmp_path, write_image):
    results_directory = tmp_path / "TGA_Result"
    target_directory = tmp_path / "PBR_Result"
    for filename in ("wall_NMO.png", "wall_bcr_co.png", "wall_nmo_smdi.png"):
        write_image(results_directory, filename)

    moved_paths = relocate_results(str(results_directory), str(target_directory))

    assert [os.path.basename(path) for path in moved_paths] == ["wall_NMO.png"]
    assert sorted(os.listdir(results_directory)) == ["wall_bcr_co.png", "wall_nmo_smdi.png"]


def test_move_file_target_folder_blocked(tmp_path, capsys):
    source_directory = tmp_path / "TGA_Result"
    source_directory.mkdir()
    (source_directory / "wall_NMO.png").write_bytes(b"x")
    (tmp_path / "PBR_Result").write_text("not a folder")

    assert move_file(str(source_directory / "wall_NMO.png"), str(tmp_path / "PBR_Result")) is None
    assert "failed to move" in capsys.readouterr().out
    assert (source_directory / "wall_NMO.png").exists()


def test_relocate_continues_after_failed_moves(tmp_path, write_image, capsys):
    results_directory = tmp_path / "TGA_Result"
    for filename in ("wall_NMO.png", "wall_BCR.png"):
        write_image(results_directory, filename)
    (tmp_path / "PBR_Result").write_text("not a folder")

    assert relocate_results(str(results_directory), str(tmp_path / "PBR_Result")) == []
    assert capsys.readouterr().out.count("failed to move") == 2
    assert sorted(os.listdir(results_directory)) == ["wall_BCR.png", "wall_NMO.png"]


def test_relocate_skips_only_the_failed_move(tmp_path, write_image, monkeypatch, capsys):
    results_directory = tmp_path / "TGA_Result"
    target_directory = tmp_path / "PBR_Result"
    for filename in ("wall_BCR.png", "wall_NMO.png"):
        write_image(results_directory, filename)

    original_move = shutil.move

    def failing_move(source, destination):
        if os.path.basename(source) == "wall_BCR.png":
            raise PermissionError("locked")
        return original_move(source, destination)

    monkeypatch.setattr(shutil, "move", failing_move)

    moved_paths = relocate_results(str(results_directory), str(target_directory))

    assert [os.path.basename(path) for path in moved_paths] == ["wall_NMO.png"]
    assert os.listdir(results_directory) == ["wall_BCR.png"]
    assert "locked" in capsys.readouterr().out
