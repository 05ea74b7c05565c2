"""Environment variable loading utilities."""

import os
from typing import Dict

from dotenv import load_dotenv


def load_env() -> Dict[str, str]:
    """Load environment variables from .env file using python-dotenv.

    Returns:
        Dict[str, str]: Dictionary of environment variables
    """
    load_dotenv()
    return dict(os.environ)
