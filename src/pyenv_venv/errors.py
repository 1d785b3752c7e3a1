"""
Error types for pyenv-venv

Every error carries the process exit code the CLI should terminate with.
"""

from typing import Optional


class VirtualenvError(Exception):
    """Base error for virtualenv creation failures"""

    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ValidationError(VirtualenvError):
    """Invalid virtualenv name, version or argument vector"""


class VersionNotInstalledError(VirtualenvError):
    """The source version does not resolve to an installed prefix"""

    def __init__(self, version: str):
        super().__init__(f"`{version}' is not installed in pyenv.")
        self.version = version


class TargetExistsError(VirtualenvError):
    """The target (or its compatibility link) is occupied"""


class IncompatibleOptionsError(VirtualenvError):
    """Options that the selected backend cannot honor"""


class BackendError(VirtualenvError):
    """The backend exited with a non-zero status"""

    def __init__(self, backend: str, status: int):
        super().__init__(f"{backend} exited with status {status}.", exit_code=status)
        self.backend = backend
        self.status = status


class BootstrapError(VirtualenvError):
    """Installing setuptools/pip into the new environment failed"""


class DownloadError(VirtualenvError):
    """A bootstrap script could not be fetched"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"failed to download {url}: {reason}")
        self.url = url


class HookError(VirtualenvError):
    """A before/after hook failed"""

    def __init__(self, hook: str, status: int):
        super().__init__(f"hook `{hook}' failed with status {status}.", exit_code=status or 1)
        self.hook = hook
        self.status = status
