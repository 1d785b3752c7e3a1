"""
pyenv-venv - create pyenv-managed virtualenvs with virtualenv, venv or conda
"""

__version__ = "1.2.4"

from .backends import Backend, BackendChoice, BackendDetector
from .config import Config
from .core import VirtualenvCreator
from .paths import EnvironmentPaths, resolve_paths

__all__ = [
    "Backend",
    "BackendChoice",
    "BackendDetector",
    "Config",
    "EnvironmentPaths",
    "VirtualenvCreator",
    "resolve_paths",
]
