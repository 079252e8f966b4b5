import numpy as np
import pytest
from kite_models.setup.settings import Settings
from kite_models.setup.tether import (
    Spring,
    calc_drag,
    calc_particle_forces,
    calc_spring_force,
    mass_per_meter,
    spring_forces,
)


@pytest.fixture
def settings():
    return Settings()


def test_tether_spring_scales_with_length(settings):
    spring = Spring.tether(0, 1, 10.0, settings)
    assert np.isclose(spring.c_spring, settings.c_spring / 10.0)
    assert np.isclose(spring.damping, settings.damping / 10.0)
    assert not spring.kite
    spring.set_length(20.0, settings)
    assert np.isclose(spring.c_spring, settings.c_spring / 20.0)


def test_bridle_spring(settings):
    spring = Spring.bridle(3, 4, 2.0, settings)
    expected = settings.e_tether * (settings.d_line / 2000.0) ** 2 * np.pi / 2.0
    assert np.isclose(spring.c_spring, expected)
    assert spring.kite


def test_mass_per_meter(settings):
    assert np.isclose(mass_per_meter(settings), 724.0 * np.pi * 0.002**2)


def test_zero_extension_zero_force(settings):
    spring = Spring.tether(0, 1, 10.0, settings)
    assert calc_spring_force(settings, spring, 0.0, 0.0) == 0.0


@pytest.mark.parametrize("kite, multiplier", [(False, 0.05), (True, 0.25)])
def test_compression_multiplier(settings, kite, multiplier):
    spring = Spring(0, 1, 10.0, 1000.0, 50.0, kite=kite)
    tension = calc_spring_force(settings, spring, 0.01, 0.0)
    compression = calc_spring_force(settings, spring, -0.01, 0.0)
    assert np.isclose(tension, 10.0)
    assert np.isclose(compression, -multiplier * 10.0)


def test_kite_damping_in_tension(settings):
    tether = Spring(0, 1, 10.0, 1000.0, 50.0)
    kite = Spring(0, 1, 10.0, 1000.0, 50.0, kite=True)
    assert np.isclose(calc_spring_force(settings, tether, 0.01, 1.0), 10.0 + 50.0)
    assert np.isclose(calc_spring_force(settings, kite, 0.01, 1.0), 10.0 + 6.0 * 50.0)
    # in compression the multiplier scales damping and stiffness alike
    assert np.isclose(calc_spring_force(settings, kite, -0.01, 1.0), 0.25 * (-10.0 + 50.0))


@pytest.mark.parametrize("kite, multiplier", [(False, 0.05), (True, 0.25)])
def test_compression_scales_damping(settings, kite, multiplier):
    spring = Spring(0, 1, 10.0, 1000.0, 50.0, kite=kite)
    force = calc_spring_force(settings, spring, -0.01, 1.0)
    assert np.isclose(force, multiplier * (-10.0 + 50.0))
    # a slack spring shortening fast damps far less than a taut one
    assert abs(calc_spring_force(settings, spring, -0.01, -1.0)) < abs(calc_spring_force(settings, spring, 0.01, -1.0))


def test_stiffness_factor(settings):
    spring = Spring(0, 1, 10.0, 1000.0, 50.0)
    assert np.isclose(calc_spring_force(settings, spring, 0.01, 0.0, stiffness_factor=0.5), 5.0)


def test_stretched_segment_pulls_together(settings):
    spring = Spring.tether(0, 1, 10.0, settings)
    pos1, pos2 = np.zeros(3), np.array([0.0, 0.0, 10.1])
    spring_force, _ = calc_particle_forces(
        settings, pos1, pos2, np.zeros(3), np.zeros(3), spring, np.zeros(3), 1.225, 0.004
    )
    expected = spring.c_spring * 0.1
    assert np.allclose(spring_force, [0.0, 0.0, expected])


def test_compressed_segment_pushes_apart(settings):
    spring = Spring.tether(0, 1, 10.0, settings)
    pos1, pos2 = np.zeros(3), np.array([0.0, 0.0, 9.9])
    spring_force, _ = calc_particle_forces(
        settings, pos1, pos2, np.zeros(3), np.zeros(3), spring, np.zeros(3), 1.225, 0.004
    )
    assert spring_force[2] < 0.0
    assert np.isclose(spring_force[2], -0.05 * spring.c_spring * 0.1)


def test_half_drag(settings):
    spring = Spring.tether(0, 1, 10.0, settings)
    pos1, pos2 = np.zeros(3), np.array([0.0, 0.0, 10.0])
    v_wind = np.array([10.0, 0.0, 0.0])
    rho, diameter = 1.225, 0.004
    _, half_drag = calc_particle_forces(
        settings, pos1, pos2, np.zeros(3), np.zeros(3), spring, v_wind, rho, diameter
    )
    expected = 0.25 * rho * settings.cd_tether * 10.0 * (10.0 * diameter) * v_wind
    assert np.allclose(half_drag, expected)


def test_drag_ignores_axial_wind(settings):
    drag = calc_drag(np.array([0.0, 0.0, 5.0]), np.array([0.0, 0.0, 1.0]), 1.225, settings.cd_tether, 0.04)
    assert np.allclose(drag, 0.0)


def test_drag_uses_relative_velocity(settings):
    spring = Spring.tether(0, 1, 10.0, settings)
    pos1, pos2 = np.zeros(3), np.array([0.0, 0.0, 10.0])
    vel = np.array([10.0, 0.0, 0.0])
    # particles moving with the wind feel no drag
    _, half_drag = calc_particle_forces(settings, pos1, pos2, vel, vel, spring, vel, 1.225, 0.004)
    assert np.allclose(half_drag, 0.0)


def test_static_spring_forces(settings):
    springs = [Spring.tether(0, 1, 10.0, settings), Spring.tether(1, 2, 10.0, settings)]
    pos = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 10.01], [0.0, 0.0, 20.01]])
    forces = spring_forces(settings, pos, springs)
    assert np.isclose(forces[0], springs[0].c_spring * 0.01)
    assert np.isclose(forces[1], 0.0, atol=1e-6)
