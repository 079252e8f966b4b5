import numpy as np
import pytest
from kite_models.models.kps3 import KPS3
from kite_models.setup.kite import NumericalDivergenceError, SteadyStateError
from kite_models.setup.settings import Settings


@pytest.fixture
def kps3():
    return KPS3(Settings())


@pytest.fixture(scope="module")
def steady_kps3():
    kps3 = KPS3(Settings())
    y0, yd0 = kps3.find_steady_state()
    return kps3, y0, yd0


def test_dimensions(kps3):
    y0, yd0 = kps3.init()
    assert y0.shape == (36,)
    assert yd0.shape == (36,)
    assert kps3.residual(y0, yd0, 0.0).shape == (36,)
    assert len(kps3.tether_springs()) == 6


def test_initial_geometry(kps3):
    settings = kps3.settings
    kps3.init()
    assert np.isclose(np.linalg.norm(kps3.pos_kite()), settings.l_tether, rtol=1e-6)
    assert np.isclose(np.degrees(kps3.calc_elevation()), settings.elevation)
    assert np.isclose(kps3.tether_length(), settings.l_tether)


def test_residual_is_deterministic(kps3):
    y0, yd0 = kps3.init()
    res_1 = kps3.residual(y0, yd0, 0.0)
    res_2 = kps3.residual(y0, yd0, 0.0)
    assert np.array_equal(res_1, res_2)


def test_residual_does_not_modify_inputs(kps3):
    y0, yd0 = kps3.init()
    y_copy, yd_copy = y0.copy(), yd0.copy()
    kps3.residual(y0, yd0, 0.0)
    assert np.array_equal(y0, y_copy)
    assert np.array_equal(yd0, yd_copy)


def test_first_residual_is_velocity_difference(kps3):
    y0, yd0 = kps3.init()
    yd0[:18] = 1.0
    res = kps3.residual(y0, yd0, 0.0)
    assert np.allclose(res[:18], -1.0)


def test_segment_length_follows_reel_out(kps3):
    settings = kps3.settings
    kps3.reset_reel_out(settings.l_tether, 2.0)
    assert np.isclose(kps3.calc_segment_length(0.5), (settings.l_tether + 1.0) / settings.segments)
    kps3.set_v_reel_out(4.0, 0.0, period=1.0)
    # the speed ramps from 2 to 4 m/s within one period
    expected = kps3.l_tether + 2.0 * 1.0 + 0.5 * 2.0 * 1.0
    assert np.isclose(kps3.calc_segment_length(1.0) * settings.segments, expected)


def test_non_finite_state(kps3):
    y0, yd0 = kps3.init()
    y0[4] = np.nan
    with pytest.raises(NumericalDivergenceError):
        kps3.residual(y0, yd0, 0.0)


def test_particle_below_ground(kps3):
    y0, yd0 = kps3.init()
    y0[2] = -50.0
    with pytest.raises(NumericalDivergenceError):
        kps3.residual(y0, yd0, 0.0)


def test_lift_points_up(kps3):
    y0, yd0 = kps3.init()
    kps3.residual(y0, yd0, 0.0)
    assert kps3.lift_force[2] > 0.0
    assert kps3.drag_force[0] > 0.0


def test_steady_state_round_trip(steady_kps3):
    kps3, y0, yd0 = steady_kps3
    res = kps3.residual(y0, yd0, 0.0)
    res2 = res[kps3.layout.res2_slice].reshape(6, 3)
    assert np.max(np.abs(res2[:, [0, 2]])) <= kps3.settings.f_tol


def test_steady_state_reference_values(steady_kps3):
    kps3, _, _ = steady_kps3
    assert 700.0 < kps3.winch_force() < 770.0
    assert 4.5 < kps3.get_lod() < 4.9
    assert 1.0 < kps3.calc_pre_tension() < 1.01


def test_steady_state_not_found():
    kps3 = KPS3(Settings(max_iter=1))
    with pytest.raises(SteadyStateError):
        kps3.find_steady_state()


def test_clear_resets_state(kps3):
    y0, yd0 = kps3.init()
    kps3.residual(y0, yd0, 0.0)
    kps3.clear()
    assert kps3.iter == 0
    assert np.isclose(kps3.get_l_tether(), kps3.settings.l_tether)
