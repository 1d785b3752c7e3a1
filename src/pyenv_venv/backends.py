"""
Backend detection for pyenv-venv
Supports conda, the built-in venv module and the external virtualenv tool
"""

import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .config import Config
from .errors import BootstrapError
from .pyenv import Pyenv


class Backend(Enum):
    """Supported environment-creation backends"""

    CONDA = "conda"
    VENV = "venv"
    VIRTUALENV = "virtualenv"


@dataclass(frozen=True)
class BackendChoice:
    """The backend selected for one invocation"""

    backend: Backend
    prefix: Path
    python: Optional[Path] = None
    virtualenv_installed: bool = False

    @property
    def bin_dir(self) -> Path:
        return self.prefix / "bin"

    @property
    def executable(self) -> Path:
        if self.backend == Backend.CONDA:
            return self.bin_dir / "conda"
        if self.backend == Backend.VENV:
            return self.python or self.bin_dir / "python"
        return self.bin_dir / "virtualenv"


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class BackendDetector:
    """Inspects a source prefix to pick the environment backend"""

    def __init__(self, config: Config, pyenv: Pyenv):
        self.config = config
        self.pyenv = pyenv

    def detect(
        self, version: str, prefix: Path, python_override: Optional[str] = None
    ) -> BackendChoice:
        """Select exactly one backend for ``version`` installed at ``prefix``

        conda wins outright. Otherwise venv is only used when the interpreter
        supports it, virtualenv is not installed, and no ``--python`` was
        given; in every other case virtualenv is used (and installed on
        demand).
        """
        bin_dir = prefix / "bin"
        if _is_executable(bin_dir / "conda"):
            self.config.trace(f"conda found in {bin_dir}")
            return BackendChoice(Backend.CONDA, prefix)

        has_virtualenv = _is_executable(bin_dir / "virtualenv")
        venv_python = self._probe_venv(version)

        if venv_python is not None and not has_virtualenv and not python_override:
            self.config.trace(f"using venv module of {venv_python}")
            return BackendChoice(Backend.VENV, prefix, python=venv_python)

        return BackendChoice(
            Backend.VIRTUALENV,
            prefix,
            python=venv_python,
            virtualenv_installed=has_virtualenv,
        )

    def _candidates(self, version: str) -> List[str]:
        if version == "system":
            return ["python3", "python", "python2"]
        return ["python"]

    def _probe_venv(self, version: str) -> Optional[Path]:
        """First interpreter whose ``-m venv --help`` succeeds"""
        for name in self._candidates(version):
            executable = self.pyenv.which(name, version)
            if executable is None:
                continue
            try:
                result = subprocess.run(
                    [str(executable), "-m", "venv", "--help"],
                    capture_output=True,
                    env=self.config.child_environment(PYENV_VERSION=version),
                )
            except (FileNotFoundError, PermissionError):
                continue
            if result.returncode == 0:
                return executable
        return None

    def ensure_virtualenv(
        self, choice: BackendChoice, quiet: bool = False, verbose: bool = False
    ) -> BackendChoice:
        """Install the virtualenv tool into the source prefix if it is missing"""
        if choice.backend != Backend.VIRTUALENV or choice.virtualenv_installed:
            return choice

        requirement = "virtualenv"
        if self.config.virtualenv_version:
            requirement = f"virtualenv=={self.config.virtualenv_version}"
        python = choice.python or choice.bin_dir / "python"
        command = [str(python), "-m", "pip", "install"]
        if quiet:
            command.append("--quiet")
        if verbose:
            command.append("--verbose")
        command.append(requirement)

        self.config.trace(" ".join(command))
        try:
            subprocess.run(command, check=True, env=self.config.child_environment())
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise BootstrapError(f"failed to install {requirement}: {e}")

        return BackendChoice(
            Backend.VIRTUALENV,
            choice.prefix,
            python=choice.python,
            virtualenv_installed=True,
        )

    def backend_version(self, choice: BackendChoice) -> str:
        """Version banner fragment of the selected backend"""
        if choice.backend == Backend.VENV:
            return "python -m venv"
        if choice.backend == Backend.VIRTUALENV and not choice.virtualenv_installed:
            return "virtualenv unknown"
        try:
            result = subprocess.run(
                [str(choice.executable), "--version"],
                capture_output=True,
                text=True,
                check=True,
                env=self.config.child_environment(),
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return f"{choice.backend.value} unknown"
        banner = (result.stdout or result.stderr).strip().splitlines()
        if not banner:
            return f"{choice.backend.value} unknown"
        version = banner[0]
        if not version.startswith(choice.backend.value):
            version = f"{choice.backend.value} {version}"
        return version

    def backend_help(self, choice: BackendChoice) -> str:
        """The backend's own ``--help`` text"""
        if choice.backend == Backend.VENV:
            command = [str(choice.executable), "-m", "venv", "--help"]
        else:
            command = [str(choice.executable), "--help"]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                env=self.config.child_environment(),
            )
        except FileNotFoundError:
            return ""
        return result.stdout
