"""Environment setup and logging for voiceform.

setup_environment() must be called before importing litellm so that its
import-time banners and debug output stay out of a real-time terminal UI.
"""

import logging
import os
import warnings

LOGGER = logging.getLogger("voiceform")


def setup_environment() -> None:
    """Configure warning filters and env vars before library imports."""
    warnings.filterwarnings("ignore", category=UserWarning)
    warnings.filterwarnings("ignore", category=DeprecationWarning)

    os.environ.setdefault("LITELLM_LOG", "ERROR")
    os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")


def quiet_third_party_loggers() -> None:
    """Raise chatty dependency loggers to WARNING."""
    for name in ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
