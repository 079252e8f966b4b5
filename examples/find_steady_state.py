import logging
from pathlib import Path

import numpy as np

from kite_models.models import create_kite_model
from kite_models.setup.settings import load_settings
from kite_models.sys_state import SysState, convert_sys_states_to_df

config_dir = Path(__file__).resolve().parents[1] / "data" / "config"
# settings.yaml: one point kite, settings_4p.yaml: four point kite, settings_3l.yaml: three line kite
config_file = "settings.yaml"


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    settings = load_settings(config_dir / config_file)
    model = create_kite_model(settings)
    model.find_steady_state()

    lift, drag = model.lift_drag()
    print(f"Physical model:   {settings.physical_model}")
    print(f"Winch force:      {np.round(model.winch_force(), 2)} N")
    print(f"Lift, drag:       {lift:.2f} N, {drag:.2f} N")
    print(f"Lift over drag:   {model.get_lod():.3f}")
    print(f"Elevation:        {np.degrees(model.calc_elevation()):.2f} deg")
    print(f"Tether length:    {model.tether_length():.3f} m")

    df = convert_sys_states_to_df([SysState.from_model(model)])
    print(df.T)
