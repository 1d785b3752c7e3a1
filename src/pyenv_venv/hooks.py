"""
before/after hooks

Hooks come from ``pyenv hooks virtualenv`` (bash scripts), from the
``hooks`` section of ``virtualenv.yaml`` (shell commands) and from Python
callables registered in-process. They run in registration order.
"""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .config import Config
from .errors import HookError

BEFORE = "before"
AFTER = "after"

HookCallable = Callable[[Dict[str, str]], Optional[int]]

# Plugin scripts are sourced. Commands they pass to before_virtualenv or
# after_virtualenv run only at the matching stage.
PLUGIN_WRAPPER = r"""
before_virtualenv() {
  if [ "$HOOK_STAGE" = "before" ]; then eval "$1" || exit $?; fi
}
after_virtualenv() {
  if [ "$HOOK_STAGE" = "after" ]; then eval "$1" || exit $?; fi
}
source "$1"
"""


@dataclass
class Hook:
    """One hook: a script, a shell command or a callable"""

    stage: Optional[str]
    target: Union[Path, str, HookCallable]
    shell: bool = False

    @property
    def label(self) -> str:
        if callable(self.target):
            return getattr(self.target, "__name__", repr(self.target))
        return str(self.target)

    def run(self, config: Config, context: Dict[str, str], stage: str) -> int:
        if callable(self.target):
            result = self.target(dict(context, HOOK_STAGE=stage))
            return 0 if result is None else int(result)
        env = config.child_environment(**context, HOOK_STAGE=stage)
        if self.shell:
            command = ["bash", "-c", str(self.target)]
        else:
            command = ["bash", "-c", PLUGIN_WRAPPER, "pyenv-virtualenv-hook", str(self.target)]
        config.trace(" ".join(command))
        try:
            return subprocess.run(command, env=env).returncode
        except FileNotFoundError:
            return 127


@dataclass
class HookRegistry:
    """Ordered hooks for both stages"""

    hooks: List[Hook] = field(default_factory=list)

    def register(self, stage: Optional[str], target, shell: bool = False):
        """Register a hook for ``stage`` (``None`` runs it at both stages)"""
        self.hooks.append(Hook(stage=stage, target=target, shell=shell))

    def for_stage(self, stage: str) -> List[Hook]:
        return [hook for hook in self.hooks if hook.stage in (None, stage)]

    def run(self, stage: str, config: Config, context: Dict[str, str]):
        for hook in self.for_stage(stage):
            status = hook.run(config, context, stage)
            if status != 0:
                raise HookError(hook.label, status)


def discover_hooks(config: Config, scripts: List[Path]) -> HookRegistry:
    """Collect hooks from plugin scripts and the configuration file

    Plugin scripts are sourced at both stages; ``before_virtualenv`` and
    ``after_virtualenv`` pick the commands for the current one.
    """
    registry = HookRegistry()
    for script in scripts:
        registry.register(None, script)
    for command in config.before_hooks:
        registry.register(BEFORE, command, shell=True)
    for command in config.after_hooks:
        registry.register(AFTER, command, shell=True)
    return registry
