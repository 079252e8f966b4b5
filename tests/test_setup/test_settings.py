from pathlib import Path

import numpy as np
import pytest
import yaml
from kite_models.setup.settings import (
    Settings,
    load_config,
    load_settings,
    validate_config,
    REQUIRED_SECTIONS,
)

CONFIG_DIR = Path(__file__).parents[2] / "data" / "config"


def test_defaults_are_valid():
    settings = Settings()
    assert settings.validate()
    assert settings.segments == 6
    assert settings.physical_model == "KPS3"
    assert np.isclose(settings.l_tether, 392.0)


@pytest.mark.parametrize("file_name, physical_model", [
    ("settings.yaml", "KPS3"),
    ("settings_4p.yaml", "KPS4"),
    ("settings_3l.yaml", "KPS4_3L"),
])
def test_load_shipped_configs(file_name, physical_model):
    settings = load_settings(CONFIG_DIR / file_name)
    assert settings.physical_model == physical_model
    assert settings.segments == 6


@pytest.mark.parametrize("kwargs", [
    {"segments": 0},
    {"segments": 2.5},
    {"l_tether": -1.0},
    {"area": 0.0},
    {"profile_law": 4},
    {"compression_tether": 0.0},
    {"compression_kite": 1.5},
    {"alpha_cl": [0.0, 10.0, 5.0, 20.0], "cl_list": [0.0, 0.1, 0.2, 0.3]},
    {"alpha_cd": [0.0, 10.0, 20.0], "cd_list": [0.1, 0.2, 0.3]},
    {"alpha_cd": [0.0, 10.0, 20.0, 30.0], "cd_list": [0.1, 0.2, 0.3]},
    {"width": 7.0, "radius": 2.0},
    {"middle_length": 0.5, "tip_length": 0.62},
])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        Settings(**kwargs).validate()


def test_tether_material():
    settings = Settings(tether_material="Dyneema-SK78")
    assert np.isclose(settings.e_tether, 132e9)
    with pytest.raises(ValueError):
        Settings(tether_material="Nylon")


def test_validate_config():
    config = {section: {} for section in REQUIRED_SECTIONS}
    assert validate_config(config)
    del config["tether"]
    assert not validate_config(config)
    assert not validate_config(None)


def test_load_config_missing_section(tmp_path):
    config_path = tmp_path / "incomplete.yaml"
    config_path.write_text(yaml.safe_dump({"system": {"segments": 4}}))
    with pytest.raises(ValueError):
        load_config(config_path)


def test_from_config_flattens_sections():
    config = {section: {} for section in REQUIRED_SECTIONS}
    config["system"] = {"segments": 4}
    config["kite"] = {"mass": 10.0}
    settings = Settings.from_config(config)
    assert settings.segments == 4
    assert np.isclose(settings.mass, 10.0)


def test_from_config_duplicate_key():
    config = {section: {} for section in REQUIRED_SECTIONS}
    config["system"] = {"segments": 4}
    config["tether"] = {"segments": 5}
    with pytest.raises(ValueError):
        Settings.from_config(config)


def test_from_config_unknown_key():
    config = {section: {} for section in REQUIRED_SECTIONS}
    config["kite"] = {"wing_span": 10.0}
    with pytest.raises(ValueError):
        Settings.from_config(config)
