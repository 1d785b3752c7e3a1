"""
Environment builder

Runs the selected backend, then applies the fixups every pyenv virtualenv
gets regardless of how it was built.
"""

import stat
import subprocess
from pathlib import Path
from typing import List

from .backends import Backend, BackendChoice
from .config import Config
from .errors import BootstrapError, DownloadError
from .options import OptionSet, conda_python_spec
from .paths import EnvironmentPaths
from .transport import Downloader

PYDOC_TEMPLATE = """#!{python}
import pydoc
if __name__ == '__main__':
    pydoc.cli()
"""


class EnvironmentBuilder:
    """Invokes a backend and finishes the resulting environment"""

    def __init__(self, config: Config, downloader: Downloader):
        self.config = config
        self.downloader = downloader

    def command(
        self,
        choice: BackendChoice,
        arguments: List[str],
        paths: EnvironmentPaths,
        options: OptionSet,
    ) -> List[str]:
        """Command line that builds ``paths.canonical`` with ``choice``"""
        target = str(paths.canonical)
        if choice.backend == Backend.CONDA:
            return [
                str(choice.executable),
                "create",
                *arguments,
                "--prefix",
                target,
                "--yes",
                conda_python_spec(options),
            ]
        if choice.backend == Backend.VENV:
            return [str(choice.executable), "-m", "venv", *arguments, target]
        return [str(choice.executable), *arguments, target]

    def build(
        self,
        choice: BackendChoice,
        arguments: List[str],
        paths: EnvironmentPaths,
        options: OptionSet,
    ) -> int:
        """Run the backend from the cache directory and return its exit status"""
        cache = self.config.ensure_cache()
        command = self.command(choice, arguments, paths, options)
        self.config.trace(" ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=str(cache),
                env=self.config.child_environment(),
            )
        except FileNotFoundError:
            return 127
        return result.returncode

    def fixup(self, paths: EnvironmentPaths, source_prefix: Path):
        """Link python*-config helpers and provide a pydoc wrapper"""
        bin_dir = paths.bin_dir
        if not bin_dir.is_dir():
            return

        for source in sorted((source_prefix / "bin").glob("python*-config")):
            target = bin_dir / source.name
            if target.exists() or target.is_symlink():
                continue
            try:
                target.symlink_to(source)
            except FileExistsError:
                pass

        pydoc = bin_dir / "pydoc"
        if not pydoc.exists():
            pydoc.write_text(PYDOC_TEMPLATE.format(python=bin_dir / "python"))
            pydoc.chmod(pydoc.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def bootstrap(self, paths: EnvironmentPaths, options: OptionSet):
        """Install setuptools and pip unless the environment already has them"""
        if options.skip_bootstrap:
            return
        bin_dir = paths.bin_dir
        if (bin_dir / "pip").exists():
            return
        python = bin_dir / "python"
        if not python.exists():
            raise BootstrapError(f"no python executable in {bin_dir}.")

        if self._run_python(python, ["-m", "ensurepip", "--default-pip"], options) == 0:
            return

        try:
            if not options.no_setuptools:
                ez_setup = self.downloader.obtain(self.config.ez_setup, self.config.ez_setup_url)
                if self._run_python(python, [str(ez_setup)], options) != 0:
                    raise BootstrapError("failed to install setuptools.")
            get_pip = self.downloader.obtain(self.config.get_pip, self.config.get_pip_url)
        except DownloadError as e:
            raise BootstrapError(str(e))
        if self._run_python(python, [str(get_pip)], options) != 0:
            raise BootstrapError("failed to install pip.")

    def _run_python(self, python: Path, args: List[str], options: OptionSet) -> int:
        command = [str(python), *args]
        self.config.trace(" ".join(command))
        result = subprocess.run(
            command,
            cwd=str(self.config.ensure_cache()),
            env=self.config.child_environment(PYENV_VERSION=None),
            stdout=subprocess.DEVNULL if options.quiet else None,
        )
        return result.returncode


def is_populated(paths: EnvironmentPaths) -> bool:
    """True when the canonical path already holds an environment"""
    bin_dir = paths.bin_dir
    return bin_dir.is_dir() and any(bin_dir.iterdir())
