from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd


@dataclass
class SysState:
    """Snapshot of a kite model for reporting"""

    time: float = 0.0  # Simulation time (s)
    orient: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))  # Kite orientation, NED, scalar first
    elevation: float = None  # Elevation angle of the kite (rad)
    azimuth: float = None  # Azimuth angle of the kite (rad)
    l_tether: float = None  # Unstretched tether length, middle line for three lines (m)
    v_reelout: float = None  # Reel-out speed (m/s)
    force: float = None  # Winch force, middle line for three lines (N)
    depower: float = None  # Depower (%)
    steering: float = None  # Steering (%)
    heading: float = None  # Heading angle (rad)
    course: float = None  # Course angle (rad)
    v_app: float = None  # Apparent wind speed at the kite (m/s)
    vel_kite: np.ndarray = None  # Kite velocity in ENU coordinates (m/s)
    X: np.ndarray = None  # Particle x coordinates (m)
    Y: np.ndarray = None  # Particle y coordinates (m)
    Z: np.ndarray = None  # Particle z coordinates (m)

    @classmethod
    def from_model(cls, model, time=0.0, zoom=1.0):
        pos = model.pos * zoom
        depower, steering = model.calc_depower_steering()
        # the middle line comes last for the three line model
        force = np.atleast_1d(model.winch_force())[-1]
        return cls(
            time=time,
            orient=model.calc_orient_quat(),
            elevation=model.calc_elevation(),
            azimuth=model.calc_azimuth(),
            l_tether=model.get_l_tether(),
            v_reelout=model.get_v_reel_out(),
            force=force,
            depower=depower,
            steering=steering,
            heading=model.calc_heading(),
            course=model.calc_course(),
            v_app=np.linalg.norm(model.v_apparent),
            vel_kite=np.array(model.vel_kite()),
            X=pos[:, 0].copy(),
            Y=pos[:, 1].copy(),
            Z=pos[:, 2].copy(),
        )


def convert_sys_states_to_df(sys_states: List[SysState]) -> pd.DataFrame:
    """Convert a list of SysState instances to a DataFrame, vectors are split into one column per component"""
    data_dicts = []
    for state in sys_states:
        data = {}
        for key, value in vars(state).items():
            if isinstance(value, np.ndarray):
                for i, component in enumerate(value):
                    data[f"{key}_{i}"] = component
            else:
                data[key] = value
        data_dicts.append(data)
    return pd.DataFrame(data_dicts)
