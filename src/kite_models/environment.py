from enum import IntEnum

import numpy as np

from kite_models.setup.settings import H_SCALE


class ProfileLaw(IntEnum):
    EXP = 1
    LOG = 2
    EXPLOG = 3


def calc_rho(height, rho_0=1.225):
    """Air density at the given height, exponential atmosphere [kg/m^3]"""
    return rho_0 * np.exp(-height / H_SCALE)


def calc_wind_factor(height, settings, profile_law=None):
    """Ratio of the wind speed at the given height and the wind speed at the reference height.

    Parameters:
    height (float): Height above ground (m), must be positive.
    settings (Settings): Provides h_ref, alpha, z0 and the default profile law.
    profile_law (ProfileLaw, optional): Overrides settings.profile_law.

    Returns:
    float: Wind factor (-).
    """
    law = ProfileLaw(settings.profile_law if profile_law is None else profile_law)
    if law == ProfileLaw.EXP:
        return (height / settings.h_ref) ** settings.alpha
    log_factor = np.log(height / settings.z0) / np.log(settings.h_ref / settings.z0)
    if law == ProfileLaw.LOG:
        return log_factor
    exp_factor = (height / settings.h_ref) ** settings.alpha
    return log_factor + (log_factor - exp_factor)
