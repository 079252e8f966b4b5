from pathlib import Path

import numpy as np
import pytest
from kite_models.models import KPS3, KPS4
from kite_models.setup.settings import load_settings

CONFIG_DIR = Path(__file__).parents[2] / "data" / "config"


def steady_model(model_class, file_name):
    model = model_class(load_settings(CONFIG_DIR / file_name))
    model.find_steady_state()
    return model


@pytest.fixture(scope="module")
def kps3():
    return steady_model(KPS3, "settings.yaml")


@pytest.fixture(scope="module")
def kps4():
    return steady_model(KPS4, "settings_4p.yaml")


def test_winch_force_of_both_models_agrees(kps3, kps4):
    # same tether, wind and aerodynamic tables
    assert abs(kps4.winch_force() / kps3.winch_force() - 1.0) < 0.01


def test_lift_of_both_models_agrees(kps3, kps4):
    lift_kps3, _ = kps3.lift_drag()
    lift_kps4, _ = kps4.lift_drag()
    assert np.isclose(lift_kps4, lift_kps3, rtol=0.02)
