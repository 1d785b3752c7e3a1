"""
Core virtualenv lifecycle

validate -> detect existing -> confirm or force -> before hooks -> build ->
fixups -> bootstrap -> migrate -> after hooks -> rehash (or cleanup).

Nothing on disk is touched until validation, backend selection and option
translation have all succeeded. From the first mutation on, a CleanupGuard
is armed; it undoes the partial build on failure or interruption.
"""

import shutil
import signal
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import click

from .backends import Backend, BackendChoice, BackendDetector
from .builder import EnvironmentBuilder, is_populated
from .config import Config, err_console
from .errors import BackendError, BootstrapError, VersionNotInstalledError
from .hooks import AFTER, BEFORE, HookRegistry, discover_hooks
from .migration import MigrationManager, MigrationState
from .options import (
    OptionSet,
    backend_arguments,
    force_enabled,
    positional_arguments,
    uses_migration,
)
from .paths import (
    EnvironmentPaths,
    check_legacy,
    link_legacy,
    resolve_paths,
    validate_name,
    validate_version,
    versions_root_of,
)
from .pyenv import Pyenv
from .transport import Downloader, select_transport


@dataclass
class BuildAttempt:
    """State the cleanup routine needs about the build in progress"""

    paths: EnvironmentPaths
    existed_before: bool
    backend: Backend
    status: Optional[int] = None
    compat_link_created: bool = False
    migration: Optional[MigrationState] = None


class CleanupGuard:
    """Undo a partial build unless disarmed

    Runs at most once. SIGTERM is turned into KeyboardInterrupt while the
    guard is armed so that both kinds of cancellation end up here.
    """

    def __init__(self, attempt: BuildAttempt, migration: MigrationManager, config: Config):
        self.attempt = attempt
        self.migration = migration
        self.config = config
        self.armed = True
        self.done = False
        self._previous_handler = None

    def __enter__(self):
        if threading.current_thread() is threading.main_thread():
            self._previous_handler = signal.signal(signal.SIGTERM, self._on_signal)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._previous_handler is not None:
            signal.signal(signal.SIGTERM, self._previous_handler)
            self._previous_handler = None
        if exc_type is not None:
            self.cleanup()
        return False

    def _on_signal(self, signum, frame):
        raise KeyboardInterrupt

    def disarm(self):
        self.armed = False

    def cleanup(self):
        if not self.armed or self.done:
            return
        self.done = True
        attempt = self.attempt
        paths = attempt.paths
        self.config.trace(f"cleaning up {paths.canonical}")

        legacy = paths.legacy
        if legacy is not None and legacy.is_symlink():
            if attempt.compat_link_created or not attempt.existed_before:
                legacy.unlink()

        if attempt.migration is not None and attempt.migration.rollback is not None:
            self.migration.rollback(attempt.migration)
        elif not attempt.existed_before:
            if paths.canonical.is_symlink():
                paths.canonical.unlink()
            elif paths.canonical.exists():
                shutil.rmtree(paths.canonical, ignore_errors=True)


class VirtualenvCreator:
    """Creates a virtualenv from an installed pyenv version"""

    def __init__(
        self,
        config: Config,
        pyenv: Optional[Pyenv] = None,
        detector: Optional[BackendDetector] = None,
        builder: Optional[EnvironmentBuilder] = None,
        migration: Optional[MigrationManager] = None,
        hooks: Optional[HookRegistry] = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ):
        self.config = config
        self.pyenv = pyenv or Pyenv(config)
        self.detector = detector or BackendDetector(config, self.pyenv)
        self.builder = builder or EnvironmentBuilder(
            config, Downloader(config, select_transport(config))
        )
        self.migration = migration or MigrationManager(config)
        self.hooks = hooks
        self.confirm = confirm or self._confirm

    @staticmethod
    def _confirm(message: str) -> bool:
        try:
            return click.confirm(message, default=False, err=True)
        except click.Abort:
            return False

    def resolve_version(self, version: str) -> Tuple[str, Path]:
        """Return the installed version name and its prefix"""
        version = version.split(":", 1)[0]
        validate_version(version)
        prefix = self.pyenv.prefix(version)
        if prefix is None or not prefix.is_dir():
            latest = self.pyenv.latest(version)
            if latest:
                version = latest
                prefix = self.pyenv.prefix(version)
        if prefix is None or not prefix.is_dir():
            raise VersionNotInstalledError(version)
        return version, prefix

    def plan(self, options: OptionSet, arguments: List[str]):
        """Everything decided before the filesystem is touched"""
        version, name = positional_arguments(arguments, self.pyenv.version_name)
        validate_name(name)
        version, prefix = self.resolve_version(version)

        versions_dir = self.config.versions_dir
        paths = resolve_paths(
            versions_dir,
            version,
            name,
            existing_root=lambda v: versions_root_of(versions_dir, self.pyenv.prefix(v)),
        )
        check_legacy(paths)

        choice = self.detector.detect(version, prefix, options.python)
        backend_args = backend_arguments(options, choice.backend)
        return version, prefix, paths, choice, backend_args

    def create(self, options: OptionSet, arguments: List[str]) -> int:
        """Create the virtualenv and return the process exit status"""
        version, prefix, paths, choice, backend_args = self.plan(options, arguments)

        if is_populated(paths) and not force_enabled(options):
            err_console.print(f"pyenv-virtualenv: {paths.canonical} already exists", markup=False, highlight=False)
            if not self.confirm("continue with installation?"):
                return 1

        choice = self.detector.ensure_virtualenv(choice, quiet=options.quiet, verbose=options.verbose)

        if self.hooks is None:
            self.hooks = discover_hooks(self.config, self.pyenv.hooks("virtualenv"))
        context = {
            "VIRTUALENV_NAME": paths.name,
            "VERSION_NAME": version,
            "PREFIX": str(paths.canonical),
        }

        attempt = BuildAttempt(
            paths=paths,
            existed_before=paths.canonical.exists() or paths.canonical.is_symlink(),
            backend=choice.backend,
        )
        with CleanupGuard(attempt, self.migration, self.config) as guard:
            self.hooks.run(BEFORE, self.config, context)

            if uses_migration(options, choice.backend):
                attempt.migration = self.migration.prepare(paths.canonical)

            paths.canonical.parent.mkdir(parents=True, exist_ok=True)
            attempt.compat_link_created = link_legacy(paths)

            attempt.status = self._build(choice, backend_args, paths, options, prefix)
            if attempt.status != 0:
                raise BackendError(choice.backend.value, attempt.status)
            guard.disarm()

        try:
            self.builder.bootstrap(paths, options)
        except BootstrapError as e:
            state = attempt.migration
            if state is None or state.rollback is None:
                raise
            message = f"{str(e).rstrip('.')}; the previous virtualenv was moved to {state.rollback}"
            if state.requirements is not None:
                message += f" and its packages listed in {state.requirements}"
            raise BootstrapError(message + ".") from e

        if attempt.migration is not None:
            self.migration.restore(attempt.migration, options)

        self.hooks.run(AFTER, self.config, context)
        self.pyenv.rehash()
        return 0

    def _build(
        self,
        choice: BackendChoice,
        backend_args: List[str],
        paths: EnvironmentPaths,
        options: OptionSet,
        prefix: Path,
    ) -> int:
        status = self.builder.build(choice, backend_args, paths, options)
        self.builder.fixup(paths, prefix)
        return status
