import logging

import numpy as np
import yaml

logger = logging.getLogger(__name__)

# %% Define physical constants
G_EARTH = 9.81  # Gravity acceleration [m/s^2]
BRIDLE_DRAG = 1.1  # Correction factor for the drag of the bridle, one-point model [-]
DRAG_CORR = 0.93  # Correction of the drag coefficient, four-point model [-]
PRE_STRESS = 0.9998  # Multiplier for the initial spring lengths of the kite [-]
H_SCALE = 8550.0  # Scale height of the air density [m]
MIN_HEIGHT = 6.0  # Minimum height for the wind profile [m]
DELTA = 1e-6  # Small offset to break the symmetry of the initial geometry [m]

GRAVITY = np.array([0.0, 0.0, -G_EARTH])

tether_materials = {
    "Dyneema-SK75": {
        "rho_tether": 970.0,
        "cd_tether": 1.1,
        "e_tether": 109e9,
    },
    "Dyneema-SK78": {
        "rho_tether": 970.0,
        "cd_tether": 1.1,
        "e_tether": 132e9,
    },
}

REQUIRED_SECTIONS = ["system", "initial", "solver", "kite", "tether", "environment"]

# Default aerodynamic coefficient tables, angle of attack in degrees
ALPHA_CL = [-180.0, -160.0, -90.0, -20.0, -10.0, -5.0, 0.0, 20.0, 40.0, 90.0, 160.0, 180.0]
CL_LIST = [0.0, 0.5, 0.0, 0.08, 0.125, 0.15, 0.2, 1.0, 1.0, 0.0, -0.5, 0.0]
ALPHA_CD = [-180.0, -170.0, -140.0, -90.0, -20.0, 0.0, 20.0, 90.0, 140.0, 170.0, 180.0]
CD_LIST = [0.5, 0.5, 0.5, 1.0, 0.2, 0.1, 0.2, 1.0, 0.5, 0.5, 0.5]


def load_config(config_path):
    """Load a yaml configuration file and check that all required sections are present"""
    with open(config_path, "r") as file:
        config_data = yaml.safe_load(file)

    if not validate_config(config_data):
        raise ValueError("Configuration file is missing required data.")

    logger.info("Configuration loaded from: %s", config_path)
    return config_data


def validate_config(config_data):
    if not isinstance(config_data, dict):
        return False
    return all(key in config_data for key in REQUIRED_SECTIONS)


def load_settings(config_path):
    return Settings.from_config(load_config(config_path))


class Settings:
    """Parameters of the kite, tether, winch and environment.

    All values are plain attributes; lengths in m, angles in degrees unless
    the name says otherwise, diameters of lines in mm.
    """

    def __init__(self, **kwargs):
        # system
        self.segments = kwargs.get("segments", 6)
        self.sample_freq = float(kwargs.get("sample_freq", 20.0))
        # initial state
        self.l_tether = float(kwargs.get("l_tether", 392.0))
        self.elevation = float(kwargs.get("elevation", 70.7))
        self.v_reel_out = float(kwargs.get("v_reel_out", 0.0))
        # steady state solver
        self.max_iter = int(kwargs.get("max_iter", 200))
        self.x_tol = float(kwargs.get("x_tol", 1e-12))
        self.f_tol = float(kwargs.get("f_tol", 1e-3))
        # steering
        self.c0 = float(kwargs.get("c0", 0.0))
        self.c_s = float(kwargs.get("c_s", 2.59))
        self.c2_cor = float(kwargs.get("c2_cor", 0.93))
        self.k_ds = float(kwargs.get("k_ds", 1.5))
        # depower
        self.alpha_d_max = float(kwargs.get("alpha_d_max", 31.0))
        self.depower_offset = float(kwargs.get("depower_offset", 23.6))
        # kite
        self.physical_model = kwargs.get("physical_model", "KPS3")
        self.mass = float(kwargs.get("mass", 6.2))
        self.area = float(kwargs.get("area", 10.18))
        self.rel_side_area = float(kwargs.get("rel_side_area", 30.6))
        self.height_k = float(kwargs.get("height_k", 2.23))
        self.width = float(kwargs.get("width", 5.77))
        self.alpha_cl = list(kwargs.get("alpha_cl", ALPHA_CL))
        self.cl_list = list(kwargs.get("cl_list", CL_LIST))
        self.alpha_cd = list(kwargs.get("alpha_cd", ALPHA_CD))
        self.cd_list = list(kwargs.get("cd_list", CD_LIST))
        # four point kite
        self.alpha_zero = float(kwargs.get("alpha_zero", 4.0))
        self.alpha_ztip = float(kwargs.get("alpha_ztip", 10.0))
        self.m_k = float(kwargs.get("m_k", 0.2))
        self.rel_nose_mass = float(kwargs.get("rel_nose_mass", 0.47))
        self.rel_top_mass = float(kwargs.get("rel_top_mass", 0.4))
        self.max_steering = float(kwargs.get("max_steering", 16.834))
        # three line kite
        self.radius = float(kwargs.get("radius", 2.0))
        self.bridle_center_distance = float(kwargs.get("bridle_center_distance", 4.9))
        self.middle_length = float(kwargs.get("middle_length", 1.2))
        self.tip_length = float(kwargs.get("tip_length", 0.62))
        self.min_steering_line_distance = float(kwargs.get("min_steering_line_distance", 1.0))
        self.aero_surfaces = kwargs.get("aero_surfaces", 3)
        self.c_connection = float(kwargs.get("c_connection", 500.0))
        self.steering_lift_fraction = float(kwargs.get("steering_lift_fraction", 0.2))
        # tether
        self.d_tether = float(kwargs.get("d_tether", 4.0))
        self.cd_tether = float(kwargs.get("cd_tether", 0.958))
        self.damping = float(kwargs.get("damping", 473.0))
        self.c_spring = float(kwargs.get("c_spring", 614600.0))
        self.rho_tether = float(kwargs.get("rho_tether", 724.0))
        self.e_tether = float(kwargs.get("e_tether", 55e9))
        self.compression_tether = float(kwargs.get("compression_tether", 0.05))
        self.compression_kite = float(kwargs.get("compression_kite", 0.25))
        self.kite_damping_factor = float(kwargs.get("kite_damping_factor", 6.0))
        self.tether_material = kwargs.get("tether_material")
        if self.tether_material is not None:
            if self.tether_material in tether_materials:
                for key, value in tether_materials[self.tether_material].items():
                    setattr(self, key, value)
            else:
                raise ValueError("Invalid tether material")
        # bridle
        self.d_line = float(kwargs.get("d_line", 2.5))
        self.l_bridle = float(kwargs.get("l_bridle", 33.4))
        self.h_bridle = float(kwargs.get("h_bridle", 4.9))
        # kite control unit
        self.kcu_mass = float(kwargs.get("kcu_mass", 8.4))
        self.power2steer_dist = float(kwargs.get("power2steer_dist", 1.3))
        self.depower_drum_diameter = float(kwargs.get("depower_drum_diameter", 0.069))
        self.tape_thickness = float(kwargs.get("tape_thickness", 0.0006))
        # winch
        self.winch_model = kwargs.get("winch_model", "AsyncMachine")
        self.max_force = float(kwargs.get("max_force", 4000.0))
        self.v_ro_max = float(kwargs.get("v_ro_max", 8.0))
        self.v_ro_min = float(kwargs.get("v_ro_min", -8.0))
        self.drum_radius = float(kwargs.get("drum_radius", 0.1615))
        self.gear_ratio = float(kwargs.get("gear_ratio", 6.2))
        self.inertia_total = float(kwargs.get("inertia_total", 0.204))
        self.f_coulomb = float(kwargs.get("f_coulomb", 122.0))
        self.c_vf = float(kwargs.get("c_vf", 30.6))
        self.omega_sn = float(kwargs.get("omega_sn", 1.0))
        self.tau_max = float(kwargs.get("tau_max", 383.0))
        # environment
        self.v_wind = float(kwargs.get("v_wind", 9.51))
        self.h_ref = float(kwargs.get("h_ref", 6.0))
        self.rho_0 = float(kwargs.get("rho_0", 1.225))
        self.alpha = float(kwargs.get("alpha", 0.08163))
        self.z0 = float(kwargs.get("z0", 0.0002))
        self.profile_law = kwargs.get("profile_law", 3)

    @classmethod
    def from_config(cls, config_data):
        """Flatten the sections of a configuration dictionary into one Settings object"""
        flat = {}
        for section, values in config_data.items():
            if not values:
                continue
            for key, value in values.items():
                if key in flat:
                    raise ValueError(f"Parameter '{key}' defined twice, last time in section '{section}'")
                flat[key] = value
        unknown = [key for key in flat if not hasattr(cls(), key)]
        if unknown:
            raise ValueError(f"Unknown parameters in configuration: {unknown}")
        settings = cls(**flat)
        settings.validate()
        return settings

    def validate(self):
        """Raise a ValueError if the parameters cannot describe a valid system"""
        if not isinstance(self.segments, (int, np.integer)) or self.segments < 1:
            raise ValueError(f"segments must be a positive integer, got {self.segments}")
        if not isinstance(self.aero_surfaces, (int, np.integer)) or self.aero_surfaces < 1:
            raise ValueError(f"aero_surfaces must be a positive integer, got {self.aero_surfaces}")
        for name in ["l_tether", "area", "mass", "d_tether", "c_spring", "sample_freq", "rho_0", "h_ref", "z0"]:
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ["compression_tether", "compression_kite"]:
            if not 0 < getattr(self, name) <= 1:
                raise ValueError(f"{name} must be in (0, 1], got {getattr(self, name)}")
        if self.profile_law not in (1, 2, 3):
            raise ValueError(f"Invalid profile law: {self.profile_law}")
        for alpha, values, name in [
            (self.alpha_cl, self.cl_list, "cl"),
            (self.alpha_cd, self.cd_list, "cd"),
        ]:
            if len(alpha) != len(values):
                raise ValueError(f"The {name} table needs as many angles as values")
            if len(alpha) < 4:
                raise ValueError(f"The {name} table needs at least four points")
            if np.any(np.diff(alpha) <= 0):
                raise ValueError(f"The angles of the {name} table must be strictly increasing")
        if self.middle_length <= self.tip_length:
            raise ValueError("The middle chord of the kite must be longer than the tip chord")
        if self.width >= np.pi * self.radius:
            raise ValueError("The kite width must be smaller than half the circumference of the kite radius")
        return True
