"""
Run configuration for pyenv-venv

The configuration is assembled once, from the process environment and the
optional ``<PYENV_ROOT>/virtualenv.yaml`` file, and handed to every
component explicitly.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from rich.console import Console

from .errors import ValidationError

CONFIG_FILE_NAME = "virtualenv.yaml"

DEFAULT_GET_PIP_URL = "https://bootstrap.pypa.io/get-pip.py"
DEFAULT_EZ_SETUP_URL = "https://bootstrap.pypa.io/ez_setup.py"

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


@dataclass
class Config:
    """Everything a run needs to know about its surroundings"""

    root: Path
    cache_path: Path
    tmp_dir: Path
    debug: bool = False
    virtualenv_version: Optional[str] = None
    get_pip: Optional[str] = None
    get_pip_url: str = DEFAULT_GET_PIP_URL
    ez_setup: Optional[str] = None
    ez_setup_url: str = DEFAULT_EZ_SETUP_URL
    pyenv_version: Optional[str] = None
    before_hooks: List[str] = field(default_factory=list)
    after_hooks: List[str] = field(default_factory=list)
    environ: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build the configuration from environment variables and the YAML file"""
        environ = dict(os.environ if environ is None else environ)

        root = Path(environ.get("PYENV_ROOT") or Path.home() / ".pyenv")
        settings = cls._load_file(root / CONFIG_FILE_NAME)
        hooks = settings.get("hooks") or {}

        cache_path = (
            environ.get("PYENV_VIRTUALENV_CACHE_PATH")
            or settings.get("cache_path")
            or root / "cache"
        )
        tmp_dir = (environ.get("TMPDIR") or "/tmp").rstrip("/") or "/"

        return cls(
            root=root,
            cache_path=Path(cache_path),
            tmp_dir=Path(tmp_dir),
            debug=bool(environ.get("PYENV_DEBUG")),
            virtualenv_version=environ.get("VIRTUALENV_VERSION")
            or settings.get("virtualenv_version"),
            get_pip=environ.get("GET_PIP"),
            get_pip_url=environ.get("GET_PIP_URL")
            or settings.get("get_pip_url")
            or DEFAULT_GET_PIP_URL,
            ez_setup=environ.get("EZ_SETUP"),
            ez_setup_url=environ.get("EZ_SETUP_URL")
            or settings.get("ez_setup_url")
            or DEFAULT_EZ_SETUP_URL,
            pyenv_version=environ.get("PYENV_VERSION") or None,
            before_hooks=list(hooks.get("before") or []),
            after_hooks=list(hooks.get("after") or []),
            environ=environ,
        )

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any]:
        if not path.is_file():
            return {}
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"invalid configuration in {path}: {e}")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError(f"invalid configuration in {path}: expected a mapping")
        return data

    @property
    def versions_dir(self) -> Path:
        return self.root / "versions"

    def ensure_cache(self) -> Path:
        """Shared download cache, created on first use"""
        self.cache_path.mkdir(parents=True, exist_ok=True)
        return self.cache_path

    def child_environment(self, **overrides: Optional[str]) -> Dict[str, str]:
        """Environment for a child process, without inherited VIRTUALENV_* settings"""
        env = {
            key: value
            for key, value in self.environ.items()
            if not key.startswith("VIRTUALENV_")
        }
        env["PYENV_ROOT"] = str(self.root)
        for key, value in overrides.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value
        return env

    def trace(self, message: str):
        """Print a trace line when PYENV_DEBUG (or --verbose) is on"""
        if self.debug:
            err_console.print(f"+ {message}", style="dim", markup=False, highlight=False)
