"""
Tests of reading the namelist file, the TOML archive and the startup report.
"""

import logging

import pytest

from rams_core.config import load_config, load_namelist, report_config, save_config
from rams_core.errors import NamelistValueError, UnrecognizedNameError

from conftest import small_namelist


@pytest.fixture
def namelist_file(tmp_path):
    path = tmp_path / "RAMSIN"
    path.write_text(small_namelist(file_info="LITE_VARS = 'UC', 'VC',"), encoding="utf-8")
    return path


def test_load_namelist(namelist_file):
    config = load_namelist(namelist_file)
    assert config.NNZP[0] == 8
    assert config.LITE_VARS[:2] == ("UC", "VC")


def test_archive_reload(namelist_file, tmp_path):
    config = load_namelist(namelist_file)
    archive = tmp_path / "config.toml"
    save_config(config, archive)

    reloaded = load_config(archive)
    assert dict(reloaded) == dict(config)
    assert reloaded.group_names == config.group_names


def test_archive_is_grouped(config, tmp_path):
    archive = tmp_path / "config.toml"
    save_config(config, archive)
    text = archive.read_text(encoding="utf-8")
    assert "[MODEL_GRIDS]" in text
    assert "[MODEL_SOUND]" in text


def test_edited_archive_is_checked(tmp_path):
    archive = tmp_path / "config.toml"

    archive.write_text("[MODEL_FILE_INFO]\nIUVWTEND = 2\n", encoding="utf-8")
    with pytest.raises(NamelistValueError, match=r"\[0, 1\]"):
        load_config(archive)

    archive.write_text("[MODEL_FILE_INFO]\nIUVWTEND = 0.5\n", encoding="utf-8")
    with pytest.raises(NamelistValueError, match="integer"):
        load_config(archive)

    archive.write_text("[MODEL_OPTIONS]\nIUVWTEND = 1\n", encoding="utf-8")
    with pytest.raises(UnrecognizedNameError):
        load_config(archive)


def test_archive_accepts_integers_for_reals(tmp_path):
    archive = tmp_path / "config.toml"
    archive.write_text("[MODEL_GRIDS]\nDELTAX = 500\nNNXP = [12, 14]\n", encoding="utf-8")
    config = load_config(archive)
    assert config.DELTAX == 500.0
    assert isinstance(config.DELTAX, float)
    assert config.NNXP[:3] == (12, 14, 10)


def test_report_lists_every_parameter_once(config, caplog):
    with caplog.at_level(logging.INFO, logger="rams_core.config.loader"):
        report_config(config)

    lines = [record.getMessage() for record in caplog.records]
    assert lines.count("$MODEL_GRIDS") == 1
    assert lines.count("$END") == len(config.group_names)
    reported = [line.split("=")[0].strip() for line in lines if "=" in line]
    assert sorted(reported) == sorted(config)
