"""Kite with three lines to the ground: a middle (power) line and two steering lines.

The wing is a circular arc of `radius`; its aerodynamic forces are integrated
over 2 * aero_surfaces angular samples and applied to the tips C and D. The
steering lines end in connection points that can only move along e_z
relative to C and D, their offsets are part of the state.
"""
import logging

import numpy as np

from kite_models.environment import calc_rho, calc_wind_factor
from kite_models.setup.kite import AbstractKiteModel, check_finite, check_height
from kite_models.setup.settings import DELTA, GRAVITY, PRE_STRESS
from kite_models.setup.tether import Spring, calc_particle_forces, mass_per_meter
from kite_models.state_vector import ThreeLineLayout
from kite_models.steady_state import solve_steady_state
from kite_models.utils import acos_clamped, normalize
from kite_models.winch import create_winch

logger = logging.getLogger(__name__)

STEADY_STATE_STIFFNESS = 0.035
LEFT, RIGHT, MIDDLE = 0, 1, 2


def get_particles(settings, pos_e, vec_c, v_app):
    """Initial positions of the bridle point E and the kite particles C, D and A.

    The wing lies on an arc of `radius` around E_c, which is
    bridle_center_distance - radius above E. C and D split the area of
    each half wing in two, A lies one middle chord behind the wing centre.
    """
    z = normalize(vec_c)
    y = normalize(np.cross(v_app, z))
    x = normalize(np.cross(y, z))

    width, radius = settings.width, settings.radius
    tip, middle = settings.tip_length, settings.middle_length
    alpha_0 = np.pi / 2.0 - width / 2.0 / radius
    s_c = width * (-2.0 * tip + np.sqrt(2.0 * middle**2 + 2.0 * tip**2)) / (4.0 * (middle - tip))
    alpha_c = alpha_0 + s_c / radius
    alpha_d = np.pi - alpha_c

    pos_c_center = pos_e + z * (radius - settings.bridle_center_distance)
    pos_C = pos_c_center + y * np.cos(alpha_c) * radius - z * np.sin(alpha_c) * radius
    pos_D = pos_c_center + y * np.cos(alpha_d) * radius - z * np.sin(alpha_d) * radius
    pos_A = 0.5 * (pos_C + pos_D) - x * middle
    return np.array([pos_e, pos_C, pos_D, pos_A])


class KPS4_3L(AbstractKiteModel):
    """Three segmented lines, three winches and a kite of four particles (E, C, D, A).

    Line lengths and reel-out speeds are state variables; the set values of
    the winches (speed or torque, see `winch_model`) are ordered left,
    right, middle.
    """

    def __init__(self, settings, kcu=None):
        super().__init__(settings, kcu)
        self.layout = ThreeLineLayout(settings.segments)
        self.motors = [create_winch(settings) for _ in range(3)]
        self.torque_control = settings.winch_model == "TorqueControlledMachine"
        self.clear()

    def clear(self):
        settings = self.settings
        settings.validate()
        layout = self.layout
        num_particles = layout.num_particles

        self.iter = 0
        self.stiffness_factor = 1.0
        self.t_0 = 0.0
        self.set_values = np.zeros(3)
        self.reel_out_speeds = np.zeros(3)

        elevation = np.radians(settings.elevation)
        self.set_v_wind_ground(np.sin(elevation) * settings.l_tether)

        pos = self.initial_positions(np.zeros(layout.steady_state_size))
        self.pos = pos
        self.vel = np.zeros((num_particles, 3))
        self.steering_pos = np.zeros(2)
        self.steering_vel = np.zeros(2)
        # steering lines end at C and D, zero deflection
        self.steering_line_lengths = np.linalg.norm(pos[[layout.C, layout.D]], axis=1)
        self.tether_lengths = np.append(self.steering_line_lengths, settings.l_tether)
        self.segment_lengths = self.tether_lengths / settings.segments

        self.init_springs()
        self.masses = np.zeros(num_particles)
        self.update_masses()
        self.forces = np.zeros((num_particles, 3))
        self.res2 = np.zeros((num_particles, 3))
        self.winch_forces = np.zeros((3, 3))

        self.v_apparent = self.v_wind.copy()
        self.lift_force = np.zeros(3)
        self.drag_force = np.zeros(3)
        self.delta_left = 0.0
        self.delta_right = 0.0
        self.calc_kite_ref_frame(pos[layout.E], pos[layout.C], pos[layout.D])
        self.set_beta_psi(elevation, 0.0)
        self.set_depower_steering(settings.depower_offset / 100.0, 0.0)

    def init_springs(self):
        settings = self.settings
        layout = self.layout
        self.springs = [
            Spring.tether(i, i + 3, self.segment_lengths[i % 3], settings) for i in range(3 * settings.segments)
        ]
        E, C, D, A = layout.E, layout.C, layout.D, layout.A
        for p1, p2 in [(E, A), (E, C), (E, D), (C, D), (C, A), (D, A)]:
            length = np.linalg.norm(self.pos[p1] - self.pos[p2]) * PRE_STRESS
            self.springs.append(Spring.bridle(p1, p2, length, settings))

    def update_masses(self):
        """Masses for the current segment lengths of the three lines"""
        settings = self.settings
        layout = self.layout
        segment_masses = mass_per_meter(settings) * self.segment_lengths
        for p in range(layout.left_conn):
            self.masses[p] = segment_masses[p % 3]
        self.masses[layout.left_conn] = 0.5 * segment_masses[LEFT]
        self.masses[layout.right_conn] = 0.5 * segment_masses[RIGHT]
        self.masses[layout.E] = 0.5 * segment_masses[MIDDLE]
        for p in (layout.C, layout.D, layout.A):
            self.masses[p] = settings.mass / 3.0

    def calc_kite_ref_frame(self, pos_e, pos_left, pos_right):
        """e_y from D to C, e_z from the wing centre towards the bridle point E"""
        self.e_y = normalize(pos_left - pos_right)
        self.e_z = normalize(pos_e - 0.5 * (pos_left + pos_right))
        self.e_x = np.cross(self.e_y, self.e_z)

    def calc_aero_forces(self, pos, vel):
        """Integrate lift and drag over the arc shaped wing; left half acts on C, right half on D"""
        settings = self.settings
        layout = self.layout
        e_x, e_y, e_z = self.e_x, self.e_y, self.e_z
        C, D = layout.C, layout.D
        n = settings.aero_surfaces
        radius, width = settings.radius, settings.width
        tip, middle = settings.tip_length, settings.middle_length

        self.delta_left = np.dot(pos[layout.left_conn] - pos[C], e_z)
        self.delta_right = np.dot(pos[layout.right_conn] - pos[D], e_z)
        alpha_l = np.pi / 2.0 - settings.min_steering_line_distance / (2.0 * radius)
        alpha_r = np.pi / 2.0 + settings.min_steering_line_distance / (2.0 * radius)

        # centre of the circle the wing lies on
        pos_center = pos[layout.E] + e_z * (radius - settings.bridle_center_distance)
        v_cx, v_dx = np.dot(vel[C], e_x) * e_x, np.dot(vel[D], e_x) * e_x
        v_c_yz = np.dot(vel[C], e_y) * e_y + np.dot(vel[C], e_z) * e_z
        v_d_yz = np.dot(vel[D], e_y) * e_y + np.dot(vel[D], e_z) * e_z
        pos_mid = 0.5 * (pos[C] + pos[D])
        y_lc = np.linalg.norm(pos[C] - pos_mid)
        y_ld = -np.linalg.norm(pos[D] - pos_mid)

        alpha_0 = np.pi / 2.0 - width / 2.0 / radius
        d_alpha = (np.pi / 2.0 - alpha_0) / n
        L_C, L_D, D_C, D_D = np.zeros(3), np.zeros(3), np.zeros(3), np.zeros(3)
        for i in range(1, 2 * n + 1):
            if i <= n:
                alpha = alpha_0 - d_alpha / 2.0 + i * d_alpha
            else:
                alpha = np.pi - (alpha_0 - d_alpha / 2.0 + (i - n) * d_alpha)

            pos_f = pos_center + e_y * np.cos(alpha) * radius - e_z * np.sin(alpha) * radius
            e_r = normalize(pos_center - pos_f)
            y_l = np.cos(alpha) * radius
            v_kite = (v_cx - v_dx) / (y_lc - y_ld) * (y_l - y_ld) + v_dx
            v_kite = v_kite + (v_c_yz if alpha < np.pi / 2.0 else v_d_yz)
            v_a = self.v_wind - v_kite
            e_drift = np.cross(e_r, e_x)
            v_a_xr = v_a - np.dot(v_a, e_drift) * e_drift

            # chord grows linearly from the tip to the middle of the wing
            if alpha < np.pi / 2.0:
                chord = tip + (middle - tip) * (alpha - alpha_0) * radius / (0.5 * width)
            else:
                chord = tip + (middle - tip) * (np.pi - alpha - alpha_0) * radius / (0.5 * width)
            if alpha < alpha_l:
                d = self.delta_left
            elif alpha > alpha_r:
                d = self.delta_right
            else:
                d = (self.delta_right - self.delta_left) / (alpha_r - alpha_l) * (alpha - alpha_l) + self.delta_left

            v_a_norm = np.linalg.norm(v_a_xr)
            aoa = np.pi - acos_clamped(np.dot(v_a_xr / v_a_norm, e_x)) + np.arcsin(np.clip(d / chord, -1.0, 1.0))
            dL_dalpha = 0.5 * self.rho * v_a_norm**2 * radius * chord * self.aero.rad_cl(aoa) * normalize(
                np.cross(v_a_xr, e_drift)
            )
            dD_dalpha = 0.5 * self.rho * v_a_norm * radius * chord * self.aero.rad_cd(aoa) * v_a_xr
            if i <= n:
                L_C += dL_dalpha * d_alpha
                D_C += dD_dalpha * d_alpha
            else:
                L_D += dL_dalpha * d_alpha
                D_D += dD_dalpha * d_alpha

        self.v_apparent = self.v_wind - 0.5 * (vel[C] + vel[D])
        self.lift_force = L_C + L_D
        self.drag_force = D_C + D_D

        fraction = settings.steering_lift_fraction
        F_steering_c = fraction * np.dot(L_C, -e_z) * -e_z
        F_steering_d = fraction * np.dot(L_D, -e_z) * -e_z
        self.forces[C] += L_C + D_C - F_steering_c
        self.forces[D] += L_D + D_D - F_steering_d
        self.forces[layout.left_conn] += F_steering_c
        self.forces[layout.right_conn] += F_steering_d

    def inner_loop(self, pos, vel):
        settings = self.settings
        num_tether = 3 * settings.segments
        for i, spring in enumerate(self.springs):
            p1, p2 = spring.p1, spring.p2
            height = 0.5 * (pos[p1][2] + pos[p2][2])
            check_height(height)
            rho = calc_rho(height, settings.rho_0)
            v_wind_tether = calc_wind_factor(height, settings) * self.v_wind_gnd
            diameter = settings.d_tether / 1000.0 if i < num_tether else settings.d_line / 1000.0
            spring_force, half_drag_force = calc_particle_forces(
                settings, pos[p1], pos[p2], vel[p1], vel[p2], spring,
                v_wind_tether, rho, diameter, self.stiffness_factor,
            )
            self.forces[p1] += half_drag_force + spring_force
            self.forces[p2] += half_drag_force - spring_force
            if i < 3:
                self.winch_forces[i] = self.forces[p1]

    def loop(self, pos, vel, posd, veld):
        settings = self.settings
        layout = self.layout
        e_z = self.e_z

        for i, spring in enumerate(self.tether_springs()):
            spring.set_length(self.segment_lengths[i % 3], settings)
        self.update_masses()
        self.inner_loop(pos, vel)

        res1 = vel - posd
        res2 = np.zeros_like(pos)
        # the steering lines only pull along e_z at the connection points
        for conn, tip in ((layout.left_conn, layout.C), (layout.right_conn, layout.D)):
            self.forces[conn] += self.masses[conn] * GRAVITY
            self.forces[conn] -= settings.c_connection * np.dot(vel[conn] - vel[tip], e_z) * e_z
            F_xy = self.forces[conn] - np.dot(self.forces[conn], e_z) * e_z
            self.forces[conn] -= F_xy
            self.forces[tip] += F_xy
            res2[conn] = np.dot(veld[conn], e_z) * e_z - self.forces[conn] / self.masses[conn]

        free = layout.free_particles
        res2[free] = veld[free] - (GRAVITY + self.forces[free] / self.masses[free, np.newaxis])
        self.res2 = res2
        return res1, res2

    def residual(self, y, yd, time=0.0):
        """Residual of particles, connection points and winches for the state y and its derivative yd"""
        layout = self.layout
        state = layout.unpack(y)
        stated = layout.unpack(yd)
        pos, vel = state.pos, state.vel
        posd, veld = stated.pos, stated.vel
        check_finite(pos, "particle positions")

        self.calc_kite_ref_frame(pos[layout.E], pos[layout.C], pos[layout.D])
        e_z = self.e_z
        for k, (conn, tip) in enumerate(((layout.left_conn, layout.C), (layout.right_conn, layout.D))):
            pos[conn] = pos[tip] + e_z * state.conn_lengths[k]
            vel[conn] = vel[tip] + e_z * state.conn_vels[k]
            posd[conn] = posd[tip] + e_z * stated.conn_lengths[k]
            veld[conn] = veld[tip] + e_z * stated.conn_vels[k]

        self.tether_lengths = state.lengths
        self.steering_pos = state.conn_lengths
        self.segment_lengths = state.lengths / self.settings.segments

        self.forces[:] = 0.0
        self.calc_aero_forces(pos, vel)
        res1, res2 = self.loop(pos, vel, posd, veld)

        conn_res1 = np.array(
            [np.dot(res1[layout.left_conn] - res1[layout.C], e_z), np.dot(res1[layout.right_conn] - res1[layout.D], e_z)]
        )
        conn_res2 = np.array(
            [np.dot(res2[layout.left_conn] - res2[layout.C], e_z), np.dot(res2[layout.right_conn] - res2[layout.D], e_z)]
        )
        length_res = stated.lengths - state.speeds
        speed_res = np.zeros(3)
        for i, motor in enumerate(self.motors):
            force = np.linalg.norm(self.winch_forces[i])
            if self.torque_control:
                acc = motor.calc_acceleration(state.speeds[i], force, set_torque=self.set_values[i], use_brake=True)
            else:
                acc = motor.calc_acceleration(state.speeds[i], force, set_speed=self.set_values[i], use_brake=True)
            speed_res[i] = stated.speeds[i] - acc

        res = layout.pack_residual(res1, res2, conn_res1, conn_res2, length_res, speed_res)
        check_finite(res, "residual")
        if np.linalg.norm(res) < 10.0:
            self.pos[:] = pos
            self.vel[:] = vel
        self.reel_out_speeds = state.speeds
        self.steering_vel = state.conn_vels
        self.iter += 1
        return res

    def initial_positions(self, X):
        """Particle positions for the steady state parameters X, the connection points coincide with C and D"""
        settings = self.settings
        layout = self.layout
        s = settings.segments
        elevation = np.radians(settings.elevation)

        pos = np.zeros((layout.num_particles, 3))
        for k, p in enumerate(layout.middle_nodes(), start=1):
            radius = k * settings.l_tether / s
            pos[p] = [
                np.cos(elevation) * radius + X[k - 1],
                DELTA,
                np.sin(elevation) * radius + X[s + k - 1],
            ]
        previous = layout.middle_nodes()[-2] if s > 1 else MIDDLE
        kite = get_particles(settings, pos[layout.E], pos[previous] - pos[layout.E], self.v_wind)

        pos[layout.A] = kite[3] + [X[2 * s], 0.0, X[2 * s + 1]]
        pos[layout.C] = kite[1] + X[2 * s + 2 : 2 * s + 5]
        pos[layout.D] = kite[2] + X[2 * s + 2 : 2 * s + 5] * [1.0, -1.0, 1.0]
        pos[layout.left_conn] = pos[layout.C]
        pos[layout.right_conn] = pos[layout.D]

        # steering lines straight towards the connection points
        for k, (p_left, p_right) in enumerate(zip(layout.left_nodes(), layout.right_nodes()), start=1):
            offset = np.array([X[2 * s + 5 + k], X[3 * s + 4 + k], X[4 * s + 3 + k]])
            pos[p_left] = pos[layout.left_conn] * k / s + offset
            pos[p_right] = pos[layout.right_conn] * k / s + offset * [1.0, -1.0, 1.0]
        return pos

    def init(self, X=None):
        """Initial state vectors (y0, yd0) for the steady state parameters X (see ThreeLineLayout)"""
        settings = self.settings
        layout = self.layout
        if X is None:
            X = np.zeros(layout.steady_state_size)
        elevation = np.radians(settings.elevation)
        self.set_v_wind_ground(np.sin(elevation) * settings.l_tether)

        X = np.asarray(X, dtype=float)
        pos = self.initial_positions(X)
        vel = np.zeros_like(pos)
        speeds = np.full(3, settings.v_reel_out)
        self.pos[:] = pos
        self.vel[:] = vel
        self.steering_pos = np.zeros(2)
        self.tether_lengths = np.append(self.steering_line_lengths + X[2 * settings.segments + 5], settings.l_tether)
        self.segment_lengths = self.tether_lengths / settings.segments

        y0 = layout.pack(pos, vel, self.steering_pos, np.zeros(2), self.tether_lengths, speeds)
        yd0 = layout.pack(vel, np.zeros_like(vel), np.zeros(2), np.zeros(2), speeds, np.zeros(3))
        return y0, yd0

    def find_steady_state(self):
        """Equilibrium with undeflected steering lines, the connection points stay at C and D.

        X[2s+5] is the extra length of both steering lines. The lines are
        softened by STEADY_STATE_STIFFNESS for a first solve whose result seeds
        a second solve with the real stiffness. The least squares rows are
        weighted with the particle masses, so the light tether nodes do not
        dominate the kite.
        """
        layout = self.layout
        s = self.settings.segments
        middle, left = layout.middle_nodes(), layout.left_nodes()

        def test_initial_condition(X):
            y0, yd0 = self.init(X)
            res = self.residual(y0, yd0, 0.0)
            res2 = self.res2
            return np.concatenate((
                res2[middle, 0],
                res2[middle, 2],
                res2[layout.A][[0, 2]],
                res2[layout.C],
                res[layout.conn_res2_slice][:1],
                res2[left, 0],
                res2[left, 1],
                res2[left, 2],
            ))

        X = np.zeros(layout.steady_state_size)
        self.init(X)
        self.update_masses()
        masses = self.masses
        weights = np.concatenate((
            masses[middle],
            masses[middle],
            masses[[layout.A, layout.A]],
            masses[[layout.C, layout.C, layout.C]],
            masses[[layout.left_conn]],
            masses[left],
            masses[left],
            masses[left],
        ))

        logger.info("Finding steady state of the three line model, %d segments per line", s)
        try:
            self.stiffness_factor = STEADY_STATE_STIFFNESS
            X = solve_steady_state(test_initial_condition, X, self.settings, weights=weights)
            self.stiffness_factor = 1.0
            X = solve_steady_state(test_initial_condition, X, self.settings, weights=weights)
        finally:
            self.stiffness_factor = 1.0
        y0, yd0 = self.init(X)
        self.residual(y0, yd0, 0.0)
        return y0, yd0

    # %% Control inputs
    def set_v_reel_out(self, set_values, t_0, period=None):
        """Set speeds or torques of the left, right and middle winch for the interval starting at t_0"""
        self.set_values = np.broadcast_to(np.asarray(set_values, dtype=float), (3,)).copy()
        self.t_0 = t_0

    def get_l_tether(self):
        return self.tether_lengths[MIDDLE]

    def get_v_reel_out(self):
        return self.reel_out_speeds[MIDDLE]

    # %% Reporting
    def winch_force(self):
        return np.linalg.norm(self.winch_forces, axis=1)

    def kite_ref_frame(self):
        return self.e_x, self.e_y, self.e_z

    def pos_kite(self):
        return self.pos[self.layout.A]

    def vel_kite(self):
        return self.vel[self.layout.A]

    def tether_springs(self):
        return self.springs[: 3 * self.settings.segments]

    def middle_springs(self):
        return [spring for spring in self.tether_springs() if spring.p1 % 3 == MIDDLE]

    def tether_length(self, pos=None):
        """Stretched length of the middle line [m]"""
        if pos is None:
            pos = self.pos
        return sum(np.linalg.norm(pos[spring.p1] - pos[spring.p2]) for spring in self.middle_springs())

    def calc_pre_tension(self, pos=None):
        unstressed = sum(spring.length for spring in self.middle_springs())
        return self.tether_length(pos) / unstressed

    def calc_depower_steering(self):
        """Depower and steering in percent, derived from the deflection of the steering lines"""
        settings = self.settings
        mean_chord = 0.5 * (settings.middle_length + settings.tip_length)
        depower = 100.0 - 0.5 * (self.delta_left + self.delta_right) / mean_chord * 100.0
        steering = (self.delta_right - self.delta_left) / mean_chord * 100.0
        return depower, steering
