import logging

from .kps3 import KPS3
from .kps4 import KPS4
from .kps4_3l import KPS4_3L

logger = logging.getLogger(__name__)

physical_models = {
    "KPS3": KPS3,
    "KPS4": KPS4,
    "KPS4_3L": KPS4_3L,
}


def create_kite_model(settings, kcu=None):
    """Build the kite model selected by settings.physical_model"""
    if settings.physical_model not in physical_models:
        raise ValueError(f"Invalid physical model: {settings.physical_model}")
    logger.info("Creating %s model with %d segments", settings.physical_model, settings.segments)
    return physical_models[settings.physical_model](settings, kcu)
