"""
Wrapper around the pyenv executable

Each method runs one pyenv subcommand; a non-zero exit status means
"not found" and is reported as ``None`` (or an empty list).
"""

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from .config import Config
from .errors import VirtualenvError


class Pyenv:
    """Opaque pyenv collaborator commands"""

    def __init__(self, config: Config, executable: Optional[str] = None):
        self.config = config
        self.executable = executable or shutil.which("pyenv") or "pyenv"

    def _run(self, *args: str, version: Optional[str] = None) -> Optional[str]:
        env = self.config.child_environment()
        if version is not None:
            env["PYENV_VERSION"] = version
        self.config.trace(f"pyenv {' '.join(args)}")
        try:
            result = subprocess.run(
                [self.executable, *args],
                capture_output=True,
                text=True,
                env=env,
            )
        except FileNotFoundError:
            raise VirtualenvError("pyenv executable not found in PATH.")
        if result.returncode != 0:
            return None
        return result.stdout

    def _lines(self, *args: str, version: Optional[str] = None) -> List[str]:
        output = self._run(*args, version=version)
        if output is None:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def versions(self) -> List[str]:
        """Installed versions, one per line"""
        return self._lines("versions", "--bare", "--skip-aliases")

    def latest(self, prefix: str) -> Optional[str]:
        """Latest installed version matching ``prefix``"""
        lines = self._lines("latest", "-q", prefix)
        return lines[0] if lines else None

    def version_name(self) -> Optional[str]:
        """Name of the active version"""
        lines = self._lines("version-name", version=self.config.pyenv_version)
        return lines[0] if lines else None

    def prefix(self, version: str) -> Optional[Path]:
        """Installation prefix of ``version``"""
        lines = self._lines("prefix", version=version)
        return Path(lines[0]) if lines else None

    def which(self, name: str, version: str) -> Optional[Path]:
        """Executable ``name`` within ``version``"""
        lines = self._lines("which", name, version=version)
        return Path(lines[0]) if lines else None

    def hooks(self, command: str) -> List[Path]:
        """Plugin hook scripts registered for ``command``"""
        return [Path(line) for line in self._lines("hooks", command)]

    def rehash(self) -> bool:
        """Refresh the shims"""
        return self._run("rehash") is not None
