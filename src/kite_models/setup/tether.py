from dataclasses import dataclass

import numpy as np

from kite_models.utils import project_onto_plane


@dataclass
class Spring:
    """Elastic, damped connection between the particles p1 and p2.

    c_spring [N/m] and damping [Ns/m] belong to the current unstressed
    length [m]; kite springs use the stiffer compression and damping laws of
    the kite frame.
    """

    p1: int
    p2: int
    length: float
    c_spring: float
    damping: float
    kite: bool = False

    @classmethod
    def tether(cls, p1, p2, length, settings):
        """Tether segment, unit stiffness and damping scaled with the length"""
        return cls(p1, p2, length, settings.c_spring / length, settings.damping / length)

    @classmethod
    def bridle(cls, p1, p2, length, settings):
        """Bridle line or kite frame segment, stiffness from the Young's modulus of the line"""
        k = settings.e_tether * (settings.d_line / 2000.0) ** 2 * np.pi / length
        return cls(p1, p2, length, k, settings.damping / length, kite=True)

    def set_length(self, length, settings):
        self.length = length
        self.c_spring = settings.c_spring / length
        self.damping = settings.damping / length


def mass_per_meter(settings):
    """Mass of the tether per meter [kg/m]"""
    return settings.rho_tether * np.pi * (settings.d_tether / 2000.0) ** 2


def calc_drag(v_app, unit_vector, rho, cd, area):
    """Drag of a line element, only the apparent wind perpendicular to the element counts"""
    v_app_perp = project_onto_plane(v_app, unit_vector)
    return 0.5 * rho * cd * np.linalg.norm(v_app_perp) * area * v_app_perp


def calc_spring_force(settings, spring, extension, spring_vel, stiffness_factor=1.0):
    """Axial force of a spring, positive values pull the end points together"""
    k = spring.c_spring * stiffness_factor
    c = spring.damping
    if extension > 0.0:
        if spring.kite:
            c = settings.kite_damping_factor * c
        return k * extension + c * spring_vel
    compression = settings.compression_kite if spring.kite else settings.compression_tether
    # a slack line neither pushes nor damps much
    return compression * (k * extension + c * spring_vel)


def calc_particle_forces(settings, pos1, pos2, vel1, vel2, spring, v_wind_tether, rho, diameter, stiffness_factor=1.0):
    """Spring and drag force of one segment.

    Parameters:
    settings (Settings): provides cd_tether and the compression/damping multipliers.
    pos1, pos2, vel1, vel2 (np.ndarray): State of the two end points.
    spring (Spring): The segment.
    v_wind_tether (np.ndarray): Wind velocity at the segment (m/s).
    rho (float): Air density at the segment (kg/m^3).
    diameter (float): Line diameter (m).

    Returns:
    tuple: spring force acting on particle 1 (particle 2 gets the negated
    force) and the half drag force that acts on each of the two particles.
    """
    segment = pos1 - pos2
    norm1 = np.linalg.norm(segment)
    unit_vector = segment / norm1

    rel_vel = vel1 - vel2
    av_vel = 0.5 * (vel1 + vel2)
    spring_vel = np.dot(unit_vector, rel_vel)
    extension = norm1 - spring.length

    spring_force = -calc_spring_force(settings, spring, extension, spring_vel, stiffness_factor) * unit_vector

    area = norm1 * diameter
    half_drag_force = 0.5 * calc_drag(v_wind_tether - av_vel, unit_vector, rho, settings.cd_tether, area)
    return spring_force, half_drag_force


def spring_forces(settings, pos, springs, stiffness_factor=1.0):
    """Static force of each spring for the given positions [N]"""
    forces = np.zeros(len(springs))
    for i, spring in enumerate(springs):
        extension = np.linalg.norm(pos[spring.p1] - pos[spring.p2]) - spring.length
        forces[i] = calc_spring_force(settings, spring, extension, 0.0, stiffness_factor)
    return forces
