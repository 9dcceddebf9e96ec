import os
import re

import pytest

from eibkit.workspace import setup_build_directory, setup_combustion_directory

BUILD_NAME = re.compile(r"build-(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\d{2}_\d{2}-\d{2}-\d{2}$")


def test_setup_build_directory_empty_root_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    build_dir = setup_build_directory("")

    assert os.path.isdir(build_dir)
    assert build_dir.startswith("build-")
    assert BUILD_NAME.fullmatch(build_dir)


@pytest.mark.parametrize("existing", [True, False])
def test_setup_build_directory_non_empty_root_dir(tmp_path, existing):
    root_dir = tmp_path / "root"
    if existing:
        root_dir.mkdir()

    build_dir = setup_build_directory(str(root_dir))

    assert os.path.isdir(build_dir)
    assert build_dir.startswith(os.path.join(str(root_dir), "build-"))
    assert BUILD_NAME.fullmatch(os.path.basename(build_dir))


def test_setup_build_directory_under_a_file_fails(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(OSError):
        setup_build_directory(str(blocker))


def test_setup_combustion_directory(tmp_path):
    combustion_dir, artefacts_dir = setup_combustion_directory(str(tmp_path))

    assert combustion_dir == os.path.join(str(tmp_path), "combustion")
    assert artefacts_dir == os.path.join(str(tmp_path), "artefacts")
    assert os.path.isdir(combustion_dir)
    assert os.path.isdir(artefacts_dir)


def test_setup_combustion_directory_is_repeatable(tmp_path):
    first = setup_combustion_directory(str(tmp_path))
    second = setup_combustion_directory(str(tmp_path))
    assert first == second
    assert sorted(os.listdir(tmp_path)) == ["artefacts", "combustion"]