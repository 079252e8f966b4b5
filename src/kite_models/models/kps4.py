"""Four point kite model on a single segmented tether with a kite control unit (KCU)."""
import logging

import numpy as np

from kite_models.environment import calc_rho, calc_wind_factor
from kite_models.setup.kite import ReelOutModel, check_finite, check_height
from kite_models.setup.settings import DELTA, DRAG_CORR, GRAVITY, MIN_HEIGHT, PRE_STRESS
from kite_models.setup.tether import Spring, calc_particle_forces, mass_per_meter
from kite_models.state_vector import PointMassLayout
from kite_models.steady_state import solve_steady_state
from kite_models.utils import normalize

logger = logging.getLogger(__name__)

KITE_PARTICLES = 4


def get_particles(settings, pos_pod, vec_c, v_app):
    """Initial positions of the KCU and of the kite particles A (nose), B (top), C (left) and D (right).

    Parameters:
    settings (Settings): Provides height_k, h_bridle, width and m_k.
    pos_pod (np.ndarray): Position of the KCU.
    vec_c (np.ndarray): Direction from the KCU towards the last tether particle.
    v_app (np.ndarray): Apparent wind velocity, defines the lateral axis.

    Returns:
    np.ndarray: Array of shape (5, 3) with the positions of KCU, A, B, C, D.
    """
    z = normalize(vec_c)
    y = normalize(np.cross(v_app, z))
    x = normalize(np.cross(y, z))

    pos_B = pos_pod - (settings.height_k + settings.h_bridle) * z
    pos_C = pos_B + settings.height_k * z + 0.5 * settings.width * y
    pos_A = pos_B + settings.height_k * z + settings.width * settings.m_k * x
    pos_D = pos_B + settings.height_k * z - 0.5 * settings.width * y
    return np.array([pos_pod, pos_A, pos_B, pos_C, pos_D])


class KPS4(ReelOutModel):
    """Segmented tether, KCU and a kite made of four particles connected by nine springs.

    Particles: ground 0, tether 1 .. segments (the last one is the KCU),
    A = segments+1 (nose), B = segments+2 (top), C = segments+3 (left tip),
    D = segments+4 (right tip).
    """

    def __init__(self, settings, kcu=None):
        super().__init__(settings, kcu)
        segments = settings.segments
        self.num_kcu = segments
        self.num_A = segments + 1
        self.num_B = segments + 2
        self.num_C = segments + 3
        self.num_D = segments + 4
        self.layout = PointMassLayout(segments + KITE_PARTICLES)
        self.clear()

    def clear(self):
        settings = self.settings
        settings.validate()
        segments = settings.segments
        num_particles = segments + KITE_PARTICLES + 1

        self.iter = 0
        self.stiffness_factor = 1.0
        self.period = 1.0 / settings.sample_freq
        self.reset_reel_out(settings.l_tether, 0.0)
        self.segment_length = settings.l_tether / segments

        elevation = np.radians(settings.elevation)
        self.set_v_wind_ground(np.sin(elevation) * settings.l_tether)
        self.pos = np.zeros((num_particles, 3))
        self.vel = np.zeros((num_particles, 3))
        for i in range(1, segments + 1):
            radius = i * self.segment_length
            self.pos[i] = [np.cos(elevation) * radius, DELTA, np.sin(elevation) * radius]
        kite = get_particles(settings, self.pos[segments], self.pos[segments - 1] - self.pos[segments], self.v_wind)
        self.pos[self.num_A:] = kite[1:]

        self.init_springs()
        self.init_masses()
        self.forces = np.zeros((num_particles, 3))
        self.winch_force_vec = np.zeros(3)

        self.v_apparent = self.v_wind.copy()
        self.lift_force = np.zeros(3)
        self.drag_force = np.zeros(3)
        self.alpha_2 = 0.0
        self.alpha_3 = 0.0
        self.alpha_4 = 0.0
        self.calc_kite_ref_frame(self.pos[self.num_B], self.pos[self.num_C], self.pos[self.num_D])
        self.set_beta_psi(elevation, 0.0)
        self.set_depower_steering(settings.depower_offset / 100.0, 0.0)

    def init_springs(self):
        """Tether springs followed by the nine springs of the kite, rest lengths from the initial geometry"""
        settings = self.settings
        segments = settings.segments
        self.springs = [Spring.tether(i, i + 1, self.segment_length, settings) for i in range(segments)]
        kcu, A, B, C, D = self.num_kcu, self.num_A, self.num_B, self.num_C, self.num_D
        for p1, p2 in [(kcu, A), (C, A), (C, D), (B, C), (kcu, D), (kcu, C), (B, D), (D, A), (A, B)]:
            length = np.linalg.norm(self.pos[p1] - self.pos[p2]) * PRE_STRESS
            self.springs.append(Spring.bridle(p1, p2, length, settings))

    def init_masses(self):
        settings = self.settings
        num_particles = len(self.pos)
        self.kite_masses = np.zeros(num_particles)
        self.kite_masses[self.num_kcu] = settings.kcu_mass
        k2 = settings.rel_top_mass * (1.0 - settings.rel_nose_mass)
        k3 = 0.5 * (1.0 - settings.rel_top_mass) * (1.0 - settings.rel_nose_mass)
        self.kite_masses[self.num_A] = settings.rel_nose_mass * settings.mass
        self.kite_masses[self.num_B] = k2 * settings.mass
        self.kite_masses[self.num_C] = k3 * settings.mass
        self.kite_masses[self.num_D] = k3 * settings.mass
        self.masses = np.zeros(num_particles)
        self.update_masses()

    def update_masses(self):
        """Tether masses for the current segment length, half of each segment at either end"""
        segment_mass = mass_per_meter(self.settings) * self.segment_length
        self.masses[:] = self.kite_masses
        for spring in self.tether_springs():
            self.masses[spring.p1] += 0.5 * segment_mass
            self.masses[spring.p2] += 0.5 * segment_mass

    def calc_kite_ref_frame(self, pos_top, pos_left, pos_right):
        """Kite frame from the top particle B and the tips C and D; e_z points from B towards the tips"""
        self.e_y = normalize(pos_left - pos_right)
        self.e_z = normalize(0.5 * (pos_left + pos_right) - pos_top)
        self.e_x = np.cross(self.e_y, self.e_z)

    def calc_aero_forces(self, pos, vel, rho, alpha_depower, rel_steering):
        """Lift and drag of the top surface (at B) and of the two side surfaces (at C and D)"""
        settings = self.settings
        e_x, e_y, e_z = self.e_x, self.e_y, self.e_z
        B, C, D = self.num_B, self.num_C, self.num_D
        ks = np.radians(settings.max_steering)

        va_2 = self.v_wind - vel[B]
        va_3 = self.v_wind - vel[C]
        va_4 = self.v_wind - vel[D]
        self.v_apparent = va_2

        va_xz2 = va_2 - np.dot(va_2, e_y) * e_y
        va_xy3 = va_3 - np.dot(va_3, e_z) * e_z
        va_xy4 = va_4 - np.dot(va_4, e_z) * e_z

        self.alpha_2 = np.degrees(np.arctan2(-np.dot(va_xz2, e_z), -np.dot(va_xz2, e_x)) - alpha_depower) + settings.alpha_zero
        self.alpha_3 = np.degrees(np.arctan2(np.dot(va_xy3, e_y), -np.dot(va_xy3, e_x)) - rel_steering * ks) + settings.alpha_ztip
        self.alpha_4 = np.degrees(np.arctan2(-np.dot(va_xy4, e_y), -np.dot(va_xy4, e_x)) + rel_steering * ks) + settings.alpha_ztip

        K = 0.5 * rho * settings.area
        K_tip = K * settings.rel_side_area / 100.0

        CL2, CD2 = self.aero.cl(self.alpha_2), DRAG_CORR * self.aero.cd(self.alpha_2)
        CL3, CD3 = self.aero.cl(self.alpha_3), DRAG_CORR * self.aero.cd(self.alpha_3)
        CL4, CD4 = self.aero.cl(self.alpha_4), DRAG_CORR * self.aero.cd(self.alpha_4)

        L2 = K * CL2 * np.dot(va_xz2, va_xz2) * normalize(np.cross(va_2, e_y))
        L3 = K_tip * CL3 * np.dot(va_xy3, va_xy3) * normalize(np.cross(va_3, e_z))
        L4 = K_tip * CL4 * np.dot(va_xy4, va_xy4) * normalize(np.cross(e_z, va_4))
        D2 = K * CD2 * np.linalg.norm(va_xz2) * va_xz2
        D3 = K_tip * CD3 * np.linalg.norm(va_xy3) * va_xy3
        D4 = K_tip * CD4 * np.linalg.norm(va_xy4) * va_xy4

        self.lift_force = L2 + L3 + L4
        self.drag_force = D2 + D3 + D4
        self.forces[B] += L2 + D2
        self.forces[C] += L3 + D3
        self.forces[D] += L4 + D4

    def inner_loop(self, pos, vel):
        settings = self.settings
        num_tether = settings.segments
        for i, spring in enumerate(self.springs):
            p1, p2 = spring.p1, spring.p2
            height = 0.5 * (pos[p1][2] + pos[p2][2])
            check_height(height)
            rho = calc_rho(height, settings.rho_0)
            v_wind_tether = calc_wind_factor(max(height, MIN_HEIGHT), settings) * self.v_wind_gnd
            diameter = settings.d_tether / 1000.0 if i < num_tether else settings.d_line / 1000.0
            spring_force, half_drag_force = calc_particle_forces(
                settings, pos[p1], pos[p2], vel[p1], vel[p2], spring,
                v_wind_tether, rho, diameter, self.stiffness_factor,
            )
            self.forces[p1] += half_drag_force + spring_force
            self.forces[p2] += half_drag_force - spring_force
            if i == 0:
                self.winch_force_vec = self.forces[0].copy()

    def residual(self, y, yd, time=0.0):
        """Residual for the state y = (pos, vel) and yd = (posd, veld) at the given time"""
        settings = self.settings
        pos, vel = self.layout.unpack(y)
        posd, veld = self.layout.unpack(yd)
        check_finite(pos, "particle positions")

        self.segment_length = self.calc_segment_length(time)
        for spring in self.tether_springs():
            spring.set_length(self.segment_length, settings)
        self.update_masses()

        self.forces[:] = 0.0
        self.calc_kite_ref_frame(pos[self.num_B], pos[self.num_C], pos[self.num_D])
        self.calc_aero_forces(pos, vel, self.rho, self.alpha_depower, self.steering)
        self.inner_loop(pos, vel)

        res1 = vel - posd
        res2 = veld - (GRAVITY + self.forces / self.masses[:, np.newaxis])
        res = self.layout.pack_residual(res1, res2)
        check_finite(res, "residual")
        if np.linalg.norm(res) < 10.0:
            self.pos[:] = pos
            self.vel[:] = vel
        self.iter += 1
        return res

    def init(self, X=None):
        """Straight tether with the kite on top.

        X holds the x offsets and then the z offsets of the tether particles,
        of A, of B and of the pair C/D (2 * (segments + 3) values).
        """
        settings = self.settings
        segments = settings.segments
        n = segments + 3
        if X is None:
            X = np.zeros(2 * n)
        elevation = np.radians(settings.elevation)

        pos = np.zeros((segments + KITE_PARTICLES + 1, 3))
        vel = np.zeros_like(pos)
        for i in range(1, segments + 1):
            radius = i * settings.l_tether / segments
            pos[i] = [
                np.cos(elevation) * radius + X[i - 1],
                DELTA,
                np.sin(elevation) * radius + X[n + i - 1],
            ]
        self.reset_reel_out(settings.l_tether, settings.v_reel_out)
        self.set_v_wind_ground(pos[segments][2])

        kite = get_particles(settings, pos[segments], pos[segments - 1] - pos[segments], self.v_wind)
        pos[self.num_A] = kite[1] + [X[segments], 0.0, X[n + segments]]
        pos[self.num_B] = kite[2] + [X[segments + 1], 0.0, X[n + segments + 1]]
        pos[self.num_C] = kite[3] + [X[segments + 2], 0.0, X[n + segments + 2]]
        pos[self.num_D] = kite[4] + [X[segments + 2], 0.0, X[n + segments + 2]]
        self.pos[:] = pos
        self.vel[:] = vel

        y0 = self.layout.pack(pos, vel)
        yd0 = self.layout.pack(vel, np.zeros_like(vel))
        return y0, yd0

    def find_steady_state(self):
        segments = self.settings.segments
        n = segments + 3
        # tether particles, A, B and D
        solved = np.concatenate((np.arange(segments + 2), [segments + 3]))

        def test_initial_condition(X):
            y0, yd0 = self.init(X)
            res = self.residual(y0, yd0, 0.0)
            res2 = res[self.layout.res2_slice].reshape(self.layout.num_free, 3)[solved]
            return np.concatenate((res2[:, 0], res2[:, 2]))

        logger.info("Finding steady state of the four point model, %d segments", segments)
        X = solve_steady_state(test_initial_condition, np.zeros(2 * n), self.settings)
        y0, yd0 = self.init(X)
        self.residual(y0, yd0, 0.0)
        return y0, yd0

    # %% Reporting
    def winch_force(self):
        return np.linalg.norm(self.winch_force_vec)

    def kite_ref_frame(self):
        return self.e_x, self.e_y, self.e_z

    def pos_kite(self):
        return self.pos[self.num_B]

    def vel_kite(self):
        return self.vel[self.num_B]

    def tether_springs(self):
        return self.springs[: self.settings.segments]
