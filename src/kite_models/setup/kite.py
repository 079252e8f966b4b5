from abc import ABC, abstractmethod
import logging

import numpy as np

from kite_models.aerodynamics import AeroCoefficients
from kite_models.environment import calc_rho, calc_wind_factor
from kite_models.setup.kcu import KCU
from kite_models.setup.settings import MIN_HEIGHT
from kite_models.setup.tether import spring_forces
from kite_models.utils import (
    calc_azimuth,
    calc_course,
    calc_elevation,
    calc_heading,
    calc_orient_quat,
)

logger = logging.getLogger(__name__)


class NumericalDivergenceError(RuntimeError):
    """Non-finite intermediate value or a particle below the ground inside a residual evaluation"""


class SteadyStateError(RuntimeError):
    """The steady state solver did not reach the requested tolerance"""

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


def check_finite(values, name):
    if not np.all(np.isfinite(values)):
        raise NumericalDivergenceError(f"Non-finite {name}")


def check_height(height):
    if not height > 0.0:
        raise NumericalDivergenceError(f"Particle height must be positive, got {height}")


class AbstractKiteModel(ABC):
    """Lumped mass model of a kite, its tether(s) and winch(es).

    The state is owned by the caller: residual(y, yd, time) maps a candidate
    state vector and its time derivative to a residual that is zero for a
    physically consistent state. The model keeps the environment (wind, air
    density), the control inputs and the last accepted particle positions.
    """

    def __init__(self, settings, kcu=None):
        settings.validate()
        self.settings = settings
        self.kcu = kcu if kcu is not None else KCU(settings)
        self.aero = AeroCoefficients.from_settings(settings)
        self.iter = 0
        self.v_wind = np.zeros(3)
        self.v_wind_gnd = np.zeros(3)
        self.v_wind_tether = np.zeros(3)
        self.v_apparent = np.zeros(3)
        self.lift_force = np.zeros(3)
        self.drag_force = np.zeros(3)
        self.rho = settings.rho_0
        self.alpha_depower = 0.0
        self.steering = 0.0
        self.depower = settings.depower_offset / 100.0
        self.beta = np.radians(settings.elevation)
        self.psi = 0.0
        self.stiffness_factor = 1.0

    @abstractmethod
    def clear(self):
        """Reset the model to the quiescent initial configuration"""

    @abstractmethod
    def residual(self, y, yd, time=0.0):
        """Residual of the DAE for the state y and its derivative yd"""

    @abstractmethod
    def init(self, X=None):
        """Initial state vectors (y0, yd0) for the steady state parameters X"""

    @abstractmethod
    def find_steady_state(self):
        """Solve for a configuration with zero acceleration, return (y0, yd0)"""

    @abstractmethod
    def winch_force(self):
        """Magnitude of the line force at the winch(es) [N]"""

    @abstractmethod
    def kite_ref_frame(self):
        """Unit vectors (e_x, e_y, e_z) of the kite reference frame"""

    @abstractmethod
    def pos_kite(self):
        pass

    @abstractmethod
    def vel_kite(self):
        pass

    @abstractmethod
    def tether_springs(self):
        """Springs of the tether(s), the bridle excluded"""

    # %% Environment and control inputs
    def set_v_wind_ground(self, height, v_wind_gnd=None, wind_dir=0.0):
        """Set the ground wind speed and update the wind at the kite and at the tether.

        Parameters:
        height (float): Height of the kite (m), clamped to a minimum of 6 m.
        v_wind_gnd (float, optional): Wind speed at reference height (m/s).
        wind_dir (float): Wind direction, measured from the x-axis (rad).
        """
        if v_wind_gnd is None:
            v_wind_gnd = self.settings.v_wind
        height = max(height, MIN_HEIGHT)
        self.v_wind_gnd = v_wind_gnd * np.array([np.cos(wind_dir), np.sin(wind_dir), 0.0])
        self.v_wind = self.v_wind_gnd * calc_wind_factor(height, self.settings)
        self.v_wind_tether = self.v_wind_gnd * calc_wind_factor(height / 2.0, self.settings)
        self.rho = calc_rho(height, self.settings.rho_0)

    def set_depower_steering(self, depower, steering):
        """Set the relative depower (0..1) and the relative steering (-1..1) of the kite"""
        settings = self.settings
        self.depower = depower
        self.alpha_depower = self.kcu.calc_alpha_depower(depower) * (settings.alpha_d_max / 31.0)
        self.steering = (steering - settings.c0) / (
            1.0 + settings.k_ds * (self.alpha_depower / np.radians(settings.alpha_d_max))
        )

    def set_beta_psi(self, beta, psi):
        """Set the elevation and azimuth angle of the kite [rad], used for the steering correction"""
        self.beta = beta
        self.psi = psi

    # %% Reporting
    def calc_height(self):
        return self.pos_kite()[2]

    def calc_elevation(self):
        return calc_elevation(self.pos_kite())

    def calc_azimuth(self):
        return calc_azimuth(self.pos_kite())

    def calc_heading(self):
        e_x, _, _ = self.kite_ref_frame()
        return calc_heading(self.pos_kite(), e_x)

    def calc_course(self):
        return calc_course(self.pos_kite(), self.vel_kite())

    def calc_orient_quat(self):
        return calc_orient_quat(*self.kite_ref_frame())

    def calc_depower_steering(self):
        """Depower and steering in percent"""
        return 100.0 * self.depower, 100.0 * self.steering

    def lift_drag(self):
        """Magnitude of the lift and the drag force of the kite [N]"""
        return np.linalg.norm(self.lift_force), np.linalg.norm(self.drag_force)

    def get_lod(self):
        lift, drag = self.lift_drag()
        return lift / drag

    def spring_forces(self, pos=None):
        """Static forces of the tether springs for the given or the last accepted positions [N]"""
        if pos is None:
            pos = self.pos
        return spring_forces(self.settings, pos, self.tether_springs(), self.stiffness_factor)

    def tether_length(self, pos=None):
        """Stretched length of the tether [m]"""
        if pos is None:
            pos = self.pos
        return sum(np.linalg.norm(pos[spring.p1] - pos[spring.p2]) for spring in self.tether_springs())

    def calc_pre_tension(self, pos=None):
        """Ratio of the stretched and the unstretched tether length [-]"""
        unstressed = sum(spring.length for spring in self.tether_springs())
        return self.tether_length(pos) / unstressed


class ReelOutModel(AbstractKiteModel):
    """Single tether whose unstretched length is integrated from the reel-out speed.

    Within the interval that starts at t_0 the reel-out speed ramps linearly
    from last_v_reel_out to v_reel_out over `period`.
    """

    def __init__(self, settings, kcu=None):
        super().__init__(settings, kcu)
        self.l_tether = settings.l_tether
        self.v_reel_out = 0.0
        self.last_v_reel_out = 0.0
        self.t_0 = 0.0
        self.period = 1.0 / settings.sample_freq

    def set_v_reel_out(self, v_reel_out, t_0, period=None):
        """Start a new time interval at t_0 with the reel-out speed ramping towards v_reel_out"""
        self.l_tether += 0.5 * (self.last_v_reel_out + self.v_reel_out) * self.period
        self.last_v_reel_out = self.v_reel_out
        self.v_reel_out = v_reel_out
        self.t_0 = t_0
        if period is not None:
            self.period = period

    def set_l_tether(self, l_tether):
        self.l_tether = l_tether

    def get_l_tether(self):
        return self.l_tether

    def get_v_reel_out(self):
        return self.v_reel_out

    def calc_segment_length(self, time):
        """Unstretched segment length at the given time [m]"""
        delta_t = time - self.t_0
        delta_v = self.v_reel_out - self.last_v_reel_out
        length = self.l_tether + self.last_v_reel_out * delta_t + 0.5 * delta_v / self.period * delta_t**2
        return length / self.settings.segments

    def reset_reel_out(self, l_tether, v_reel_out):
        """Constant reel-out speed, no ramp"""
        self.l_tether = l_tether
        self.v_reel_out = v_reel_out
        self.last_v_reel_out = v_reel_out
        self.t_0 = 0.0
