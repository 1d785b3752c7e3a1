"""
Shared fixtures: a fake pyenv root whose interpreters and backends are
small shell scripts
"""

import os
from pathlib import Path
from typing import List, Optional

import pytest

from pyenv_venv.config import Config

# Fake interpreter. Understands just enough of `-m venv`, `-m pip` and
# `-m ensurepip` for the lifecycle to run end to end.
PYTHON_SCRIPT = r"""#!/bin/sh
echo "python $*" >> "$FAKE_LOG"
here=$(cd "$(dirname "$0")" && pwd)
if [ "$1" = "-m" ] && [ "$2" = "venv" ]; then
  if [ "$3" = "--help" ]; then
    exit @VENV_STATUS@
  fi
  for target; do :; done
  mkdir -p "$target/bin"
  cp "$0" "$target/bin/python"
  cp "$here/pip.template" "$target/bin/pip.template" 2>/dev/null
  cp "$here/pip.template" "$target/bin/pip" 2>/dev/null
  exit "${FAKE_BACKEND_STATUS:-0}"
fi
if [ "$1" = "-m" ] && [ "$2" = "pip" ]; then
  if [ "$3" = "install" ]; then
    for requirements; do :; done
    if [ -f "$requirements" ]; then
      cat "$requirements" >> "$here/../installed.txt"
    fi
  fi
  exit "${FAKE_PIP_STATUS:-0}"
fi
if [ "$1" = "-m" ] && [ "$2" = "ensurepip" ]; then
  if [ -n "$FAKE_ENSUREPIP_STATUS" ] && [ "$FAKE_ENSUREPIP_STATUS" != "0" ]; then
    exit "$FAKE_ENSUREPIP_STATUS"
  fi
  cp "$here/pip.template" "$here/pip"
  exit 0
fi
exit 0
"""

PIP_SCRIPT = r"""#!/bin/sh
echo "pip $*" >> "$FAKE_LOG"
here=$(cd "$(dirname "$0")" && pwd)
if [ "$1" = "freeze" ]; then
  cat "$here/../installed.txt" 2>/dev/null
fi
exit 0
"""

VIRTUALENV_SCRIPT = r"""#!/bin/sh
echo "virtualenv $*" >> "$FAKE_LOG"
here=$(cd "$(dirname "$0")" && pwd)
for target; do :; done
mkdir -p "$target/bin"
if [ -n "$FAKE_BACKEND_STATUS" ] && [ "$FAKE_BACKEND_STATUS" != "0" ]; then
  exit "$FAKE_BACKEND_STATUS"
fi
cp "$here/python" "$target/bin/python"
cp "$here/pip.template" "$target/bin/pip.template"
if [ -z "$FAKE_NO_PIP" ]; then
  cp "$here/pip.template" "$target/bin/pip"
fi
exit 0
"""

CONDA_SCRIPT = r"""#!/bin/sh
echo "conda $*" >> "$FAKE_LOG"
here=$(cd "$(dirname "$0")" && pwd)
if [ "$1" = "--version" ]; then
  echo "conda 23.1.0"
  exit 0
fi
target=""
previous=""
for arg; do
  if [ "$previous" = "--prefix" ]; then target="$arg"; fi
  previous="$arg"
done
mkdir -p "$target/bin"
cp "$here/python" "$target/bin/python"
cp "$here/pip.template" "$target/bin/pip"
exit "${FAKE_BACKEND_STATUS:-0}"
"""


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(0o755)
    return path


def install_version(
    root: Path,
    version: str,
    venv: bool = True,
    virtualenv: bool = False,
    conda: bool = False,
) -> Path:
    """Create a fake installed interpreter under ``<root>/versions``"""
    prefix = root / "versions" / version
    bin_dir = prefix / "bin"
    write_script(
        bin_dir / "python",
        PYTHON_SCRIPT.replace("@VENV_STATUS@", "0" if venv else "1"),
    )
    write_script(bin_dir / "pip.template", PIP_SCRIPT)
    write_script(bin_dir / "python3.9-config", "#!/bin/sh\nexit 0\n")
    if virtualenv:
        write_script(bin_dir / "virtualenv", VIRTUALENV_SCRIPT)
    if conda:
        write_script(bin_dir / "conda", CONDA_SCRIPT)
    return prefix


class FakePyenv:
    """In-process stand-in for the pyenv collaborator commands"""

    def __init__(self, config: Config, active: Optional[str] = "3.9.0", system_prefix: Optional[Path] = None):
        self.config = config
        self.active = active
        self.system_prefix = system_prefix
        self.hook_scripts: List[Path] = []
        self.rehashed = 0

    def versions(self) -> List[str]:
        versions_dir = self.config.versions_dir
        if not versions_dir.is_dir():
            return []
        return sorted(p.name for p in versions_dir.iterdir() if p.is_dir())

    def latest(self, prefix: str) -> Optional[str]:
        matches = [v for v in self.versions() if v.startswith(prefix + ".")]
        return matches[-1] if matches else None

    def version_name(self) -> Optional[str]:
        return self.active

    def prefix(self, version: str) -> Optional[Path]:
        if version == "system":
            return self.system_prefix
        prefix = self.config.versions_dir / version
        return prefix if prefix.is_dir() else None

    def which(self, name: str, version: str) -> Optional[Path]:
        prefix = self.prefix(version)
        if prefix is None:
            return None
        executable = prefix / "bin" / name
        return executable if executable.exists() else None

    def hooks(self, command: str) -> List[Path]:
        return list(self.hook_scripts)

    def rehash(self) -> bool:
        self.rehashed += 1
        return True


@pytest.fixture
def pyenv_root(tmp_path):
    root = tmp_path / "pyenv"
    (root / "versions").mkdir(parents=True)
    return root


@pytest.fixture
def fake_log(tmp_path):
    return tmp_path / "commands.log"


@pytest.fixture
def make_config(pyenv_root, tmp_path, fake_log):
    """Factory for a Config rooted at the fake pyenv root"""
    tmp_dir = tmp_path / "tmp"
    tmp_dir.mkdir(exist_ok=True)

    def factory(**extra) -> Config:
        environ = {
            "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
            "HOME": str(tmp_path),
            "PYENV_ROOT": str(pyenv_root),
            "TMPDIR": str(tmp_dir),
            "FAKE_LOG": str(fake_log),
        }
        environ.update({key: str(value) for key, value in extra.items()})
        return Config.from_environment(environ)

    return factory


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def fake_pyenv(config):
    return FakePyenv(config)
