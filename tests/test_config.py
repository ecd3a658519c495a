import json
from datetime import date
from pathlib import Path

import pytest

from iris_mobility.config import ConfigError, ReportConfig, default_metadata, load_config


def write_config(tmp_path: Path, data) -> Path:
    path = tmp_path / "metadata.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_and_relative_paths(tmp_path: Path):
    cfg = load_config(write_config(tmp_path, {"city_name": "Lima"}))
    assert isinstance(cfg, ReportConfig)
    assert cfg.data_dir == tmp_path / "raw_data"
    assert cfg.output_dir == tmp_path / "outputs"
    assert cfg.speed_limit_kmh == 80
    assert cfg.catalog_start == date(2017, 9, 1)
    assert cfg.product_name == "IRIS Mobility"


def test_directory_argument_reads_metadata_json(tmp_path: Path):
    write_config(tmp_path, {"city_name": "Lima", "speed_limit_kmh": 60})
    assert load_config(tmp_path).speed_limit_kmh == 60


def test_template_round_trips(tmp_path: Path):
    cfg = load_config(write_config(tmp_path, default_metadata("lima_centro")))
    assert cfg.city_name == "lima centro"
    assert cfg.intersection_name is None
    assert cfg.catalog_end == date(2017, 10, 31)
    assert cfg.metadata == {"city_name": "lima centro", "intersection_name": None}


def test_unknown_keys_are_ignored(tmp_path: Path, caplog):
    cfg = load_config(write_config(tmp_path, {"city_name": "Lima", "timezone": "UTC"}))
    assert cfg.city_name == "Lima"
    assert "timezone" in caplog.text


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"city_name": ""},
        {"city_name": "Lima", "speed_limit_kmh": "fast"},
        {"city_name": "Lima", "speed_limit_kmh": True},
        {"city_name": "Lima", "catalog_start": "01/09/2017"},
        {"city_name": "Lima", "catalog_start": "2017-10-01", "catalog_end": "2017-09-01"},
        ["not", "an", "object"],
    ],
)
def test_invalid_config(tmp_path: Path, data):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, data))


def test_missing_and_malformed_files(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "metadata.json")
    (tmp_path / "metadata.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)
