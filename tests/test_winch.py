import numpy as np
import pytest
from kite_models.setup.settings import Settings
from kite_models.winch import AsyncMachine, TorqueControlledMachine, WinchModel, create_winch, smooth_sign


def test_create_winch():
    assert isinstance(create_winch(Settings()), AsyncMachine)
    assert isinstance(create_winch(Settings(winch_model="TorqueControlledMachine")), TorqueControlledMachine)
    with pytest.raises(ValueError):
        create_winch(Settings(winch_model="DieselEngine"))


def test_winch_model_is_abstract():
    with pytest.raises(TypeError):
        WinchModel(Settings())

    class SpeedOnly(WinchModel):
        def select_set_value(self, set_speed, set_torque):
            return set_speed

    # a motor without a force law cannot be built
    with pytest.raises(TypeError):
        SpeedOnly(Settings())


def test_smooth_sign():
    assert np.isclose(smooth_sign(0.0), 0.0)
    assert smooth_sign(5.0) > 0.99
    assert smooth_sign(-5.0) < -0.99


def test_effective_mass():
    settings = Settings()
    winch = AsyncMachine(settings)
    expected = settings.inertia_total * (settings.gear_ratio / settings.drum_radius) ** 2
    assert np.isclose(winch.mass_eff, expected)


@pytest.mark.parametrize("winch_model", ["AsyncMachine", "TorqueControlledMachine"])
def test_brake(winch_model):
    winch = create_winch(Settings(winch_model=winch_model))
    acc = winch.calc_acceleration(2.0, 1000.0, set_speed=0.0, set_torque=0.0, use_brake=True)
    assert np.isclose(acc, -60.0)


def test_async_machine_at_synchronous_speed():
    winch = AsyncMachine(Settings())
    speed, force = 2.0, 500.0
    acc = winch.calc_acceleration(speed, force, set_speed=speed)
    assert np.isclose(acc, (force - winch.friction(speed)) / winch.mass_eff)


def test_async_machine_accelerates_towards_set_speed():
    winch = AsyncMachine(Settings())
    assert winch.calc_acceleration(0.0, 0.0, set_speed=1.0) > 0.0
    assert winch.calc_acceleration(0.0, 0.0, set_speed=-1.0) < 0.0


def test_async_machine_clips_set_speed():
    settings = Settings()
    winch = AsyncMachine(settings)
    assert np.isclose(
        winch.calc_acceleration(1.0, 100.0, set_speed=100.0),
        winch.calc_acceleration(1.0, 100.0, set_speed=settings.v_ro_max),
    )


def test_async_machine_needs_set_speed():
    winch = AsyncMachine(Settings())
    with pytest.raises(ValueError):
        winch.calc_acceleration(0.0, 100.0, set_torque=10.0)


def test_torque_controlled_machine():
    settings = Settings(winch_model="TorqueControlledMachine")
    winch = create_winch(settings)
    acc = winch.calc_acceleration(0.0, 300.0, set_torque=-10.0)
    expected = (300.0 + winch.torque_to_force(-10.0)) / winch.mass_eff
    assert np.isclose(acc, expected)
    with pytest.raises(ValueError):
        winch.calc_acceleration(0.0, 300.0, set_speed=1.0)
