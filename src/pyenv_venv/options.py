"""
Option translation

Parses the uniform ``pyenv virtualenv`` argument vector getopt-style and
projects the result onto the flags each backend understands.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .backends import Backend
from .errors import IncompatibleOptionsError, ValidationError


@dataclass
class OptionSet:
    """Parsed options shared by every backend"""

    force: bool = False
    upgrade: bool = False
    quiet: bool = False
    verbose: bool = False
    python: Optional[str] = None
    no_pip: bool = False
    no_setuptools: bool = False
    no_wheel: bool = False
    without_pip: bool = False
    help: bool = False
    version: bool = False
    complete: bool = False
    passthrough: List[str] = field(default_factory=list)

    @property
    def skip_bootstrap(self) -> bool:
        return self.without_pip or self.no_pip


@dataclass
class ParsedArguments:
    options: OptionSet
    arguments: List[str]


def split_argv(argv: Sequence[str]):
    """Split ``argv`` into (flags, positional arguments)

    ``-abc`` yields the flags ``a``, ``b`` and ``c``; ``--name`` and
    ``--name=value`` yield a single flag. Everything after ``--`` is
    positional.
    """
    flags: List[str] = []
    arguments: List[str] = []
    argv = list(argv)
    while argv:
        arg = argv.pop(0)
        if arg == "--":
            arguments.extend(argv)
            break
        if arg.startswith("--"):
            flags.append(arg[2:])
        elif arg.startswith("-") and len(arg) > 1:
            flags.extend(arg[1:])
        else:
            arguments.append(arg)
    return flags, arguments


def parse_options(argv: Sequence[str]) -> ParsedArguments:
    """Consume recognized flags into an OptionSet"""
    flags, arguments = split_argv(argv)
    options = OptionSet()

    for flag in flags:
        if flag in ("f", "force"):
            options.force = True
        elif flag in ("h", "help"):
            options.help = True
        elif flag in ("u", "upgrade"):
            options.upgrade = True
        elif flag in ("q", "quiet"):
            options.quiet = True
        elif flag in ("v", "verbose"):
            options.verbose = True
        elif flag == "version":
            options.version = True
        elif flag == "complete":
            options.complete = True
        elif flag == "without-pip":
            options.without_pip = True
        elif flag in ("p", "python"):
            if not arguments:
                raise ValidationError("option `--python' requires an argument.")
            options.python = arguments.pop(0)
        elif flag.startswith("python="):
            options.python = flag[len("python="):]
        else:
            if flag == "no-pip":
                options.no_pip = True
            elif flag == "no-setuptools":
                options.no_setuptools = True
            elif flag == "no-wheel":
                options.no_wheel = True
            options.passthrough.append(f"--{flag}")

    if options.verbose:
        options.quiet = False

    return ParsedArguments(options=options, arguments=arguments)


def positional_arguments(arguments: Sequence[str], active_version):
    """Return (source version, virtualenv name)

    With a single argument the source version is the active one, looked up
    lazily through ``active_version()``.
    """
    if not arguments:
        raise ValidationError("no virtualenv name given.")
    if len(arguments) == 1:
        version = active_version()
        if not version:
            raise ValidationError("no active version; give a version explicitly.")
        return version, arguments[0]
    if len(arguments) > 2:
        raise ValidationError(f"too many arguments: {' '.join(arguments[2:])}")
    return arguments[0], arguments[1]


def _without_bootstrap_flags(options: OptionSet) -> List[str]:
    """Passthrough flags minus the virtualenv-only bootstrap switches"""
    dropped = set()
    if options.no_pip:
        dropped.add("--no-pip")
    if options.no_setuptools:
        dropped.add("--no-setuptools")
    if options.no_wheel:
        dropped.add("--no-wheel")
    return [flag for flag in options.passthrough if flag not in dropped]


def backend_arguments(options: OptionSet, backend: Backend) -> List[str]:
    """Translate options into the backend's own flags"""
    if backend == Backend.VENV:
        # detect() never picks venv with --python; callers choosing the
        # backend themselves still get the error.
        if options.python:
            unsupported = ["--python"]
            if options.quiet:
                unsupported.append("--quiet")
            if options.verbose:
                unsupported.append("--verbose")
            raise IncompatibleOptionsError(
                f"{', '.join(unsupported)} not supported by the venv module."
            )
        args = []
        if options.upgrade:
            args.append("--upgrade")
        if options.skip_bootstrap:
            args.append("--without-pip")
        args.extend(_without_bootstrap_flags(options))
        return args

    args = []
    if options.quiet:
        args.append("--quiet")
    if options.verbose:
        args.append("--verbose")
    if backend == Backend.VIRTUALENV:
        if options.python:
            args.append(f"--python={options.python}")
        args.extend(options.passthrough)
    else:
        args.extend(_without_bootstrap_flags(options))
    return args


def conda_python_spec(options: OptionSet) -> str:
    """Package spec conda should install into the new environment"""
    if options.python:
        return f"python={options.python}"
    return "python"


def uses_migration(options: OptionSet, backend: Backend) -> bool:
    """Whether an upgrade is a rebuild plus package migration"""
    return options.upgrade and backend != Backend.VENV


def force_enabled(options: OptionSet) -> bool:
    """Whether an existing target may be replaced without asking

    ``--upgrade`` implies ``--force``; under the venv module the upgrade is
    done in place by venv itself rather than by a rebuild.
    """
    return options.force or options.upgrade
