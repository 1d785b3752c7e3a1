"""
Command-line interface for pyenv-venv
"""

import dataclasses
import sys

import click
from rich.markup import escape

from . import __version__
from .backends import BackendDetector
from .config import Config, console, err_console
from .core import VirtualenvCreator
from .errors import VirtualenvError
from .options import parse_options
from .pyenv import Pyenv

USAGE = """\
Usage: pyenv virtualenv [-f|--force] [VIRTUALENV_OPTIONS] [version] <virtualenv-name>
       pyenv virtualenv --version
       pyenv virtualenv --help

  -u/--upgrade          Imply --force; rebuild and reinstall the packages of
                        an existing virtualenv
  -f/--force            Install even if the version appears to be installed
                        already
  -q/--quiet            Pass --quiet to the backend
  -v/--verbose          Pass --verbose to the backend
  -p/--python PYTHON    Interpreter the virtualenv tool should use
  --no-pip              Do not install pip into the new environment
  --no-setuptools       Do not install setuptools into the new environment
  --without-pip         Skip installing setuptools and pip altogether

Unrecognized options are passed to the backend.
"""

CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_extra_args": True,
    "help_option_names": [],
}


def _print_error(message: str):
    err_console.print(f"[red]pyenv-virtualenv: {escape(message)}[/red]", highlight=False)


def _active_backend(config: Config, pyenv: Pyenv, python_override=None):
    """Backend for the active version, or None when it cannot be determined"""
    version = pyenv.version_name()
    if not version:
        return None, None
    prefix = pyenv.prefix(version)
    if prefix is None or not prefix.is_dir():
        return None, None
    detector = BackendDetector(config, pyenv)
    return detector, detector.detect(version, prefix, python_override)


def show_version(config: Config, pyenv: Pyenv):
    detector, choice = _active_backend(config, pyenv)
    banner = detector.backend_version(choice) if choice is not None else "unknown"
    console.print(f"pyenv-virtualenv {__version__} ({banner})", markup=False, highlight=False)


def show_help(config: Config, pyenv: Pyenv):
    click.echo(USAGE)
    detector, choice = _active_backend(config, pyenv)
    if choice is None:
        return
    text = detector.backend_help(choice)
    if text:
        click.echo(text)


def show_completions(pyenv: Pyenv):
    for version in pyenv.versions():
        click.echo(version)


@click.command(name="virtualenv", context_settings=CONTEXT_SETTINGS)
@click.argument("argv", nargs=-1, type=click.UNPROCESSED)
def main(argv):
    """Create a Python virtualenv using the pyenv-virtualenv plugin"""
    config = Config.from_environment()
    try:
        parsed = parse_options(argv)
        options = parsed.options
        if options.verbose:
            config = dataclasses.replace(config, debug=True)
        pyenv = Pyenv(config)

        if options.complete:
            show_completions(pyenv)
            return
        if options.version:
            show_version(config, pyenv)
            return
        if options.help:
            show_help(config, pyenv)
            return

        creator = VirtualenvCreator(config, pyenv=pyenv)
        status = creator.create(options, parsed.arguments)
    except VirtualenvError as e:
        _print_error(str(e))
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        _print_error("interrupted.")
        sys.exit(130)

    sys.exit(status)


if __name__ == "__main__":
    main()
