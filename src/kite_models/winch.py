"""Winch motor models: acceleration of the reel-out speed from the set value and the line force."""
import logging
from abc import ABC, abstractmethod

import numpy as np

logger = logging.getLogger(__name__)

BRAKE_GAIN = 30.0  # Deceleration per unit speed of the engaged brake [1/s]
BRAKE_LIMIT = 0.01  # Set values below this magnitude engage the brake
SIGN_EPSILON = 0.1  # Width of the smoothed sign function of the coulomb friction [m/s]


def smooth_sign(x, epsilon=SIGN_EPSILON):
    return x / np.sqrt(x * x + epsilon * epsilon)


class WinchModel(ABC):
    """Drum, gear box and friction shared by all motor types.

    Forces are expressed at the drum circumference; positive speeds reel out.
    """

    def __init__(self, settings):
        self.drum_radius = settings.drum_radius
        self.gear_ratio = settings.gear_ratio
        self.inertia_total = settings.inertia_total
        self.f_coulomb = settings.f_coulomb
        self.c_vf = settings.c_vf
        self.v_ro_max = settings.v_ro_max
        self.v_ro_min = settings.v_ro_min
        # inertia of motor and drum, seen at the drum circumference
        self.mass_eff = self.inertia_total * (self.gear_ratio / self.drum_radius) ** 2

    def friction(self, speed):
        return self.f_coulomb * smooth_sign(speed) + self.c_vf * speed

    def torque_to_force(self, torque):
        return torque * self.gear_ratio / self.drum_radius

    @abstractmethod
    def motor_force(self, speed, set_value):
        """Motor force at the drum circumference [N]"""

    @abstractmethod
    def select_set_value(self, set_speed, set_torque):
        """Pick the set value this motor type is controlled by"""

    def calc_acceleration(self, speed, force, set_speed=None, set_torque=None, use_brake=False):
        """Acceleration of the reel-out speed [m/s^2].

        Parameters:
        speed (float): Current reel-out speed (m/s).
        force (float): Magnitude of the line force at the winch (N).
        set_speed, set_torque (float): Set value, depending on the motor type.
        use_brake (bool): Hold the drum when the set value is close to zero.
        """
        set_value = self.select_set_value(set_speed, set_torque)
        if use_brake and abs(set_value) < BRAKE_LIMIT:
            return -BRAKE_GAIN * speed
        total_force = force + self.motor_force(speed, set_value) - self.friction(speed)
        return total_force / self.mass_eff


class AsyncMachine(WinchModel):
    """Speed controlled asynchronous motor with a Kloss torque/slip curve"""

    def __init__(self, settings):
        super().__init__(settings)
        self.omega_sn = settings.omega_sn
        self.tau_max = settings.tau_max

    def motor_force(self, speed, set_speed):
        set_speed = np.clip(set_speed, self.v_ro_min, self.v_ro_max)
        omega = self.gear_ratio / self.drum_radius * speed
        omega_sync = self.gear_ratio / self.drum_radius * set_speed
        slip = (omega_sync - omega) / self.omega_sn
        tau_motor = 2.0 * self.tau_max * slip / (1.0 + slip * slip)
        return self.torque_to_force(tau_motor)

    def select_set_value(self, set_speed, set_torque):
        if set_speed is None:
            raise ValueError("AsyncMachine needs a set speed")
        return set_speed


class TorqueControlledMachine(WinchModel):
    """Motor with a directly commanded torque [Nm], positive values reel out"""

    def motor_force(self, speed, set_torque):
        return self.torque_to_force(set_torque)

    def select_set_value(self, set_speed, set_torque):
        if set_torque is None:
            raise ValueError("TorqueControlledMachine needs a set torque")
        return set_torque


winch_models = {
    "AsyncMachine": AsyncMachine,
    "TorqueControlledMachine": TorqueControlledMachine,
}


def create_winch(settings):
    if settings.winch_model not in winch_models:
        raise ValueError(f"Invalid winch model: {settings.winch_model}")
    logger.debug("Using winch model %s", settings.winch_model)
    return winch_models[settings.winch_model](settings)
