import numpy as np
from scipy.interpolate import splrep, splev


def wrap_angle(alpha):
    """Wrap an angle in degrees into the interval [-180, 180]"""
    if -180.0 <= alpha <= 180.0:
        return alpha
    return (alpha + 180.0) % 360.0 - 180.0


class AeroCoefficients:
    """Lift and drag coefficients as smooth functions of the angle of attack.

    Cubic interpolating splines through the configured knots; the tables must
    cover -180..180 degrees.
    """

    def __init__(self, alpha_cl, cl_list, alpha_cd, cd_list):
        self.spline_cl = splrep(np.asarray(alpha_cl, dtype=float), np.asarray(cl_list, dtype=float), k=3, s=0)
        self.spline_cd = splrep(np.asarray(alpha_cd, dtype=float), np.asarray(cd_list, dtype=float), k=3, s=0)

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.alpha_cl, settings.cl_list, settings.alpha_cd, settings.cd_list)

    def cl(self, alpha):
        """Lift coefficient, alpha in degrees"""
        return float(splev(wrap_angle(alpha), self.spline_cl))

    def cd(self, alpha):
        """Drag coefficient, alpha in degrees"""
        return float(splev(wrap_angle(alpha), self.spline_cd))

    def rad_cl(self, alpha):
        return self.cl(np.degrees(alpha))

    def rad_cd(self, alpha):
        return self.cd(np.degrees(alpha))
