"""
Package migration for ``--upgrade``

The old environment is moved aside instead of deleted, its packages are
frozen, and after the rebuild they are reinstalled into the new one.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .config import Config, err_console
from .options import OptionSet


def make_seed() -> str:
    return f"{datetime.now().strftime('%Y%m%d%H%M%S')}.{os.getpid()}"


@dataclass
class MigrationState:
    """Where the previous environment and its package list were put"""

    canonical: Path
    rollback: Optional[Path] = None
    requirements: Optional[Path] = None


class MigrationManager:
    """Snapshots an environment before an upgrade and restores its packages"""

    def __init__(self, config: Config, seed: Optional[str] = None):
        self.config = config
        self.seed = seed or make_seed()

    def prepare(self, canonical: Path) -> MigrationState:
        """Freeze installed packages and move ``canonical`` aside"""
        state = MigrationState(canonical=canonical)
        if not canonical.is_dir():
            return state

        pip = canonical / "bin" / "pip"
        if pip.exists():
            requirements = self.config.tmp_dir / f"requirements.{self.seed}.txt"
            self.config.trace(f"{pip} freeze > {requirements}")
            try:
                result = subprocess.run(
                    [str(pip), "freeze"],
                    capture_output=True,
                    text=True,
                    check=True,
                    env=self.config.child_environment(PYENV_VERSION=None),
                )
            except (subprocess.CalledProcessError, FileNotFoundError) as e:
                message = f"could not freeze packages of {canonical}: {e}"
                err_console.print(f"[yellow]pyenv-virtualenv: {escape(message)}[/yellow]", highlight=False)
            else:
                requirements.parent.mkdir(parents=True, exist_ok=True)
                requirements.write_text(result.stdout)
                state.requirements = requirements

        rollback = canonical.with_name(f"{canonical.name}.{self.seed}")
        self.config.trace(f"mv {canonical} {rollback}")
        os.replace(canonical, rollback)
        state.rollback = rollback
        return state

    def restore(self, state: MigrationState, options: OptionSet) -> bool:
        """Reinstall the frozen packages into the rebuilt environment

        A failed reinstall is reported but leaves the new environment in
        place; the previous tree is kept for inspection.
        """
        requirements = state.requirements
        if requirements is not None and requirements.is_file():
            command = [str(state.canonical / "bin" / "python"), "-m", "pip", "install"]
            if options.quiet:
                command.append("--quiet")
            if options.verbose:
                command.append("--verbose")
            command.extend(["--requirement", str(requirements)])
            self.config.trace(" ".join(command))
            try:
                status = subprocess.run(
                    command,
                    cwd=str(self.config.ensure_cache()),
                    env=self.config.child_environment(PYENV_VERSION=None),
                ).returncode
            except FileNotFoundError:
                status = 127
            if status != 0:
                self.report_failure(state)
                return False
            requirements.unlink()

        if state.rollback is not None and state.rollback.exists():
            shutil.rmtree(state.rollback)
        return True

    def rollback(self, state: MigrationState):
        """Put the previous environment back after a failed rebuild"""
        if state.rollback is None or not state.rollback.exists():
            return
        if state.canonical.exists() or state.canonical.is_symlink():
            shutil.rmtree(state.canonical, ignore_errors=True)
        os.replace(state.rollback, state.canonical)
        state.rollback = None
        if state.requirements is not None and state.requirements.is_file():
            state.requirements.unlink()

    def report_failure(self, state: MigrationState):
        lines = ["UPGRADE FAILED"]
        if state.rollback is not None:
            lines.append(f"Inspect or clean up the original tree at {state.rollback}")
        if state.requirements is not None and state.requirements.is_file():
            lines.append("")
            lines.append("Package list:")
            for line in state.requirements.read_text().splitlines():
                if line.strip():
                    lines.append(f" * {line.strip()}")
        err_console.print(Panel(Text("\n".join(lines)), style="yellow"))
