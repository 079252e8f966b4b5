from pathlib import Path

import numpy as np

from kite_models.models import KPS3, KPS4
from kite_models.setup.settings import load_settings

config_dir = Path(__file__).resolve().parents[1] / "data" / "config"


if __name__ == "__main__":
    # Both models share tether, winch and environment, with matching aerodynamic coefficients
    # the winch force of the four point model should be within 1 % of the one point model
    forces = {}
    for model_class, config_file in [(KPS3, "settings.yaml"), (KPS4, "settings_4p.yaml")]:
        settings = load_settings(config_dir / config_file)
        model = model_class(settings)
        model.find_steady_state()
        lift, drag = model.lift_drag()
        forces[model_class.__name__] = model.winch_force()
        print(model_class.__name__)
        print(f"  lift: {lift:.2f} N, drag: {drag:.2f} N, L/D: {model.get_lod():.3f}")
        print(f"  winch force: {model.winch_force():.2f} N")
        print(f"  elevation: {np.degrees(model.calc_elevation()):.2f} deg")

    deviation = forces["KPS4"] / forces["KPS3"] - 1.0
    print(f"Deviation of the winch force: {100.0 * deviation:.2f} %")
