"""
Logging setup shared by the API process and scripts.
"""
import logging

from userhub.modules.settings import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s :: %(message)s"


def configure_logging(level=None):
    """Configure the root logger once for the process."""
    level = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # databases logs every query at DEBUG
    if level == "DEBUG":
        logging.getLogger("databases").setLevel(logging.INFO)
