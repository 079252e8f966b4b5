"""Mapping between the flat state/residual vectors and per-particle arrays.

All index arithmetic of the kite models lives here. Particle 0 (and for the
three-line model particles 0, 1 and 2) are the ground anchors; they are not
part of the state vector and are always returned at the origin.
"""
from collections import namedtuple

import numpy as np

ThreeLineState = namedtuple(
    "ThreeLineState", ["pos", "vel", "conn_lengths", "conn_vels", "lengths", "speeds"]
)


class PointMassLayout:
    """State layout of the single-line models.

    y = [pos_1, ..., pos_n, vel_1, ..., vel_n], three entries per particle,
    n = number of free particles. The residual uses the same order:
    res1 = vel - posd for all free particles, then res2 = veld - acc.
    """

    def __init__(self, num_free):
        if num_free < 1:
            raise ValueError("At least one free particle is required")
        self.num_free = num_free
        self.num_particles = num_free + 1
        self.size = 6 * num_free
        self.res2_slice = slice(3 * num_free, 6 * num_free)

    def unpack(self, y):
        """Return positions and velocities with the ground particle in row 0"""
        y = np.asarray(y, dtype=float)
        if y.shape != (self.size,):
            raise ValueError(f"Expected a state vector of length {self.size}, got {y.shape}")
        n = self.num_free
        pos = np.zeros((self.num_particles, 3))
        vel = np.zeros((self.num_particles, 3))
        pos[1:] = y[: 3 * n].reshape(n, 3)
        vel[1:] = y[3 * n :].reshape(n, 3)
        return pos, vel

    def pack(self, pos, vel):
        """Inverse of unpack; row 0 (ground) is ignored"""
        return np.concatenate((np.ravel(pos[1:]), np.ravel(vel[1:])))

    def pack_residual(self, res1, res2):
        return self.pack(res1, res2)


class ThreeLineLayout:
    """State layout of the three-line model with `segments` segments per line.

    Particles: ground 0, 1, 2; tether nodes 3 .. 3s-1 where node p belongs to
    line p % 3 (0 left, 1 right, 2 middle); left connection 3s, right
    connection 3s+1, E = 3s+2, C = 3s+3, D = 3s+4, A = 3s+5.

    The n = 3s+1 free particles are the tether nodes followed by E, C, D, A.
    The connection points are derived from C and D and the connection lengths.

    y = [pos (3n), vel (3n), conn_lengths (2), conn_vels (2), lengths (3), speeds (3)]
    res = [res1 (3n), conn_res1 (2), res2 (3n), conn_res2 (2), length_res (3), speed_res (3)]

    Steady state parameter vector X (5s+3 entries):
    x offsets then z offsets of the s middle line nodes (E included),
    x, z of A, x, y, z of C (D mirrored), the extra length of both steering lines,
    x, y, z of the s-1 free left line nodes (right line mirrored).
    """

    def __init__(self, segments):
        if segments < 1:
            raise ValueError("At least one segment per line is required")
        s = segments
        self.segments = s
        self.num_particles = 3 * s + 6
        self.num_free = 3 * s + 1
        self.left_conn = 3 * s
        self.right_conn = 3 * s + 1
        self.E = 3 * s + 2
        self.C = 3 * s + 3
        self.D = 3 * s + 4
        self.A = 3 * s + 5
        self.free_particles = np.concatenate((np.arange(3, 3 * s), [self.E, self.C, self.D, self.A])).astype(int)
        n = self.num_free
        self.size = 6 * n + 10
        self.steady_state_size = 5 * s + 3

        self.pos_slice = slice(0, 3 * n)
        self.vel_slice = slice(3 * n, 6 * n)
        self.conn_length_slice = slice(6 * n, 6 * n + 2)
        self.conn_vel_slice = slice(6 * n + 2, 6 * n + 4)
        self.length_slice = slice(6 * n + 4, 6 * n + 7)
        self.speed_slice = slice(6 * n + 7, 6 * n + 10)

        self.res1_slice = slice(0, 3 * n)
        self.conn_res1_slice = slice(3 * n, 3 * n + 2)
        self.res2_slice = slice(3 * n + 2, 6 * n + 2)
        self.conn_res2_slice = slice(6 * n + 2, 6 * n + 4)
        self.length_res_slice = slice(6 * n + 4, 6 * n + 7)
        self.speed_res_slice = slice(6 * n + 7, 6 * n + 10)

    def line_of(self, particle):
        return particle % 3

    def middle_nodes(self):
        """Free nodes of the middle line from the ground to E"""
        return [3 * i + 2 for i in range(1, self.segments)] + [self.E]

    def left_nodes(self):
        """Free nodes of the left steering line, the connection point excluded"""
        return [3 * i for i in range(1, self.segments)]

    def right_nodes(self):
        return [3 * i + 1 for i in range(1, self.segments)]

    def unpack(self, y):
        y = np.asarray(y, dtype=float)
        if y.shape != (self.size,):
            raise ValueError(f"Expected a state vector of length {self.size}, got {y.shape}")
        n = self.num_free
        pos = np.zeros((self.num_particles, 3))
        vel = np.zeros((self.num_particles, 3))
        pos[self.free_particles] = y[self.pos_slice].reshape(n, 3)
        vel[self.free_particles] = y[self.vel_slice].reshape(n, 3)
        return ThreeLineState(
            pos,
            vel,
            y[self.conn_length_slice].copy(),
            y[self.conn_vel_slice].copy(),
            y[self.length_slice].copy(),
            y[self.speed_slice].copy(),
        )

    def pack(self, pos, vel, conn_lengths, conn_vels, lengths, speeds):
        y = np.zeros(self.size)
        y[self.pos_slice] = np.ravel(pos[self.free_particles])
        y[self.vel_slice] = np.ravel(vel[self.free_particles])
        y[self.conn_length_slice] = conn_lengths
        y[self.conn_vel_slice] = conn_vels
        y[self.length_slice] = lengths
        y[self.speed_slice] = speeds
        return y

    def pack_residual(self, res1, res2, conn_res1, conn_res2, length_res, speed_res):
        res = np.zeros(self.size)
        res[self.res1_slice] = np.ravel(res1[self.free_particles])
        res[self.conn_res1_slice] = conn_res1
        res[self.res2_slice] = np.ravel(res2[self.free_particles])
        res[self.conn_res2_slice] = conn_res2
        res[self.length_res_slice] = length_res
        res[self.speed_res_slice] = speed_res
        return res

    def res2_of(self, res, particle):
        """Acceleration residual of one free particle"""
        slot = int(np.nonzero(self.free_particles == particle)[0][0])
        start = self.res2_slice.start + 3 * slot
        return res[start : start + 3]
