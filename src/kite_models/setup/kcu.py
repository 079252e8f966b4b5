import numpy as np

from kite_models.utils import acos_clamped

DEPOWER_REVOLUTIONS = 27.5  # Drum revolutions between zero and full depower [-]


class KCU:
    """Kite control unit: converts the relative depower setting into the depower angle of the kite"""

    def __init__(self, settings):
        self.settings = settings
        self.power2steer_dist = settings.power2steer_dist
        self.depower_drum_diameter = settings.depower_drum_diameter
        self.tape_thickness = settings.tape_thickness
        self.depower_offset = settings.depower_offset
        self.height_b = settings.h_bridle
        self.height_k = settings.height_k

    def calc_delta_l(self, rel_depower):
        """Change of the depower line length for a relative depower value between 0 and 1 [m]"""
        revolutions = (rel_depower - self.depower_offset / 100.0) * DEPOWER_REVOLUTIONS
        return np.pi * revolutions * (self.depower_drum_diameter + self.tape_thickness * revolutions)

    def calc_alpha_depower(self, rel_depower):
        """Change of the pitch angle of the kite caused by the depower line [rad]"""
        a = self.power2steer_dist
        b_0 = self.height_b + 0.5 * self.height_k
        b = b_0 + 0.5 * self.calc_delta_l(rel_depower)
        c = np.sqrt(a * a + b_0 * b_0)
        return np.pi / 2.0 - acos_clamped((a * a + b * b - c * c) / (2.0 * a * b))
