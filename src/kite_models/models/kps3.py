"""One point kite model: the kite and the KCU are a single particle at the end of a segmented tether."""
import logging

import numpy as np

from kite_models.environment import calc_rho
from kite_models.setup.kite import ReelOutModel, check_finite, check_height
from kite_models.setup.settings import BRIDLE_DRAG, DELTA, GRAVITY
from kite_models.setup.tether import Spring, calc_drag, calc_particle_forces, mass_per_meter
from kite_models.state_vector import PointMassLayout
from kite_models.steady_state import solve_steady_state
from kite_models.utils import acos_clamped, normalize

logger = logging.getLogger(__name__)


class KPS3(ReelOutModel):
    """Tether of `segments` spring-damper segments with the kite at the last particle.

    Particle 0 is the ground station, particle `segments` is the kite. The
    state vector holds positions and velocities of particles 1 .. segments;
    the tether length is integrated from the reel-out speed.
    """

    def __init__(self, settings, kcu=None):
        super().__init__(settings, kcu)
        self.layout = PointMassLayout(settings.segments)
        self.clear()

    def clear(self):
        settings = self.settings
        settings.validate()
        segments = settings.segments
        num_particles = segments + 1

        self.iter = 0
        self.stiffness_factor = 1.0
        self.period = 1.0 / settings.sample_freq
        self.reset_reel_out(settings.l_tether, 0.0)
        self.segment_length = settings.l_tether / segments
        self.springs = [Spring.tether(i, i + 1, self.segment_length, settings) for i in range(segments)]

        elevation = np.radians(settings.elevation)
        self.pos = np.zeros((num_particles, 3))
        self.vel = np.zeros((num_particles, 3))
        for i in range(1, num_particles):
            radius = i * self.segment_length
            self.pos[i] = [np.cos(elevation) * radius, DELTA, np.sin(elevation) * radius]
        self.forces = np.zeros((num_particles, 3))
        self.masses = np.zeros(num_particles)
        self.winch_force_vec = np.zeros(3)

        self.set_v_wind_ground(np.sin(elevation) * settings.l_tether)
        self.v_apparent = self.v_wind.copy()
        self.lift_force = np.zeros(3)
        self.drag_force = np.zeros(3)
        self.steering_force = np.zeros(3)
        self.vec_z = normalize(self.pos[-2] - self.pos[-1])
        self.kite_y = np.array([0.0, 1.0, 0.0])
        self.param_cl = 0.2
        self.param_cd = 1.0
        self.alpha_2 = 0.0
        self.cor_steering = 0.0
        self.set_beta_psi(elevation, 0.0)
        self.set_depower_steering(settings.depower_offset / 100.0, 0.0)

    def calc_set_cl_cd(self, vec_c, v_app):
        """Angle of attack from the direction of the last tether segment and the apparent wind"""
        self.vec_z = normalize(vec_c)
        alpha = np.pi / 2.0 - acos_clamped(-np.dot(v_app, self.vec_z) / np.linalg.norm(v_app)) - self.alpha_depower
        self.alpha_2 = np.degrees(alpha)
        self.param_cl = self.aero.cl(self.alpha_2)
        self.param_cd = self.aero.cd(self.alpha_2)

    def calc_aero_forces(self, pos_kite, v_kite, rho, rel_steering):
        """Lift, drag and steering force of the kite, returns their sum"""
        settings = self.settings
        self.v_apparent = self.v_wind - v_kite
        v_app_norm = np.linalg.norm(self.v_apparent)
        drag_direction = self.v_apparent / v_app_norm
        self.kite_y = normalize(np.cross(pos_kite, drag_direction))
        K = 0.5 * rho * v_app_norm**2 * settings.area
        self.lift_force = K * self.param_cl * normalize(np.cross(drag_direction, self.kite_y))
        # steering causes additional drag
        self.drag_force = K * self.param_cd * BRIDLE_DRAG * (1.0 + 0.6 * abs(rel_steering)) * drag_direction
        # correction of the turn rate for high elevation angles
        self.cor_steering = settings.c2_cor / v_app_norm * np.sin(self.psi) * np.cos(self.beta)
        self.steering_force = (
            -K * settings.rel_side_area / 100.0 * settings.c_s * (rel_steering + self.cor_steering) * self.kite_y
        )
        return self.lift_force + self.drag_force + self.steering_force

    def loop(self, pos, vel, posd, veld, aero_force):
        settings = self.settings
        segments = settings.segments
        d_tether = settings.d_tether / 1000.0

        self.masses[:] = mass_per_meter(settings) * self.segment_length
        self.masses[-1] += settings.mass + settings.kcu_mass

        self.forces[:] = 0.0
        for i in range(segments - 1, -1, -1):
            spring = self.springs[i]
            p1, p2 = spring.p1, spring.p2
            height = 0.5 * (pos[p1][2] + pos[p2][2])
            check_height(height)
            rho = calc_rho(height, settings.rho_0)
            spring_force, half_drag_force = calc_particle_forces(
                settings, pos[p1], pos[p2], vel[p1], vel[p2], spring,
                self.v_wind_tether, rho, d_tether, self.stiffness_factor,
            )
            self.forces[p1] += half_drag_force + spring_force
            self.forces[p2] += half_drag_force - spring_force
            if i == segments - 1:
                # drag of the bridle lines, applied at the kite
                v_app = self.v_wind_tether - 0.5 * (vel[p1] + vel[p2])
                area = settings.l_bridle * settings.d_line / 1000.0
                self.forces[p2] += calc_drag(v_app, normalize(pos[p1] - pos[p2]), rho, settings.cd_tether, area)
            if i == 0:
                self.winch_force_vec = self.forces[0].copy()

        self.forces[-1] += aero_force

        res1 = vel - posd
        res2 = veld - (GRAVITY + self.forces / self.masses[:, np.newaxis])
        return res1, res2

    def residual(self, y, yd, time=0.0):
        """Residual for the state y = (pos, vel) and yd = (posd, veld) at the given time"""
        settings = self.settings
        pos, vel = self.layout.unpack(y)
        posd, veld = self.layout.unpack(yd)
        check_finite(pos, "particle positions")

        self.segment_length = self.calc_segment_length(time)
        for spring in self.springs:
            spring.set_length(self.segment_length, settings)

        pos_kite, v_kite = pos[-1], vel[-1]
        self.calc_set_cl_cd(pos[-2] - pos_kite, self.v_wind - v_kite)
        aero_force = self.calc_aero_forces(pos_kite, v_kite, self.rho, self.steering)
        res1, res2 = self.loop(pos, vel, posd, veld, aero_force)

        res = self.layout.pack_residual(res1, res2)
        check_finite(res, "residual")
        if np.linalg.norm(res) < 10.0:
            self.pos[:] = pos
            self.vel[:] = vel
        self.iter += 1
        return res

    def init(self, X=None):
        """Straight tether at the initial elevation, node i shifted by X[i-1] in x and X[segments+i-1] in z"""
        settings = self.settings
        segments = settings.segments
        if X is None:
            X = np.zeros(2 * segments)
        elevation = np.radians(settings.elevation)

        pos = np.zeros((segments + 1, 3))
        vel = np.zeros((segments + 1, 3))
        for i in range(1, segments + 1):
            radius = i * settings.l_tether / segments
            pos[i] = [
                np.cos(elevation) * radius + X[i - 1],
                DELTA,
                np.sin(elevation) * radius + X[segments + i - 1],
            ]
        self.reset_reel_out(settings.l_tether, settings.v_reel_out)
        self.set_v_wind_ground(pos[-1][2])
        self.pos[:] = pos
        self.vel[:] = vel

        y0 = self.layout.pack(pos, vel)
        yd0 = self.layout.pack(vel, np.zeros_like(vel))
        return y0, yd0

    def find_steady_state(self):
        segments = self.settings.segments

        def test_initial_condition(X):
            y0, yd0 = self.init(X)
            res = self.residual(y0, yd0, 0.0)
            res2 = res[self.layout.res2_slice].reshape(segments, 3)
            return np.concatenate((res2[:, 0], res2[:, 2]))

        logger.info("Finding steady state of the one point model, %d segments", segments)
        X = solve_steady_state(test_initial_condition, np.zeros(2 * segments), self.settings)
        y0, yd0 = self.init(X)
        self.residual(y0, yd0, 0.0)
        return y0, yd0

    # %% Reporting
    def winch_force(self):
        return np.linalg.norm(self.winch_force_vec)

    def kite_ref_frame(self):
        e_z = self.vec_z
        e_x = normalize(np.cross(self.kite_y, e_z))
        e_y = np.cross(e_z, e_x)
        return e_x, e_y, e_z

    def pos_kite(self):
        return self.pos[-1]

    def vel_kite(self):
        return self.vel[-1]

    def tether_springs(self):
        return self.springs
