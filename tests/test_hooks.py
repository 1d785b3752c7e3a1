"""
Tests for before/after hooks
"""

import pytest

from pyenv_venv.errors import HookError
from pyenv_venv.hooks import AFTER, BEFORE, HookRegistry, discover_hooks

from conftest import write_script


class TestHookRegistry:
    def test_registration_order(self, config):
        calls = []
        registry = HookRegistry()
        registry.register(BEFORE, lambda ctx: calls.append(("first", ctx["HOOK_STAGE"])))
        registry.register(AFTER, lambda ctx: calls.append(("after", ctx["HOOK_STAGE"])))
        registry.register(None, lambda ctx: calls.append(("both", ctx["HOOK_STAGE"])))

        registry.run(BEFORE, config, {})
        registry.run(AFTER, config, {})

        assert calls == [
            ("first", BEFORE),
            ("both", BEFORE),
            ("after", AFTER),
            ("both", AFTER),
        ]

    def test_failure_propagates(self, config):
        def broken(ctx):
            return 2

        registry = HookRegistry()
        registry.register(BEFORE, broken)
        with pytest.raises(HookError) as excinfo:
            registry.run(BEFORE, config, {})
        assert excinfo.value.exit_code == 2
        assert "broken" in str(excinfo.value)

    def test_shell_command_sees_context(self, config, tmp_path):
        output = tmp_path / "hook.out"
        registry = HookRegistry()
        registry.register(AFTER, f'echo "$HOOK_STAGE $VIRTUALENV_NAME" > {output}', shell=True)
        registry.run(AFTER, config, {"VIRTUALENV_NAME": "3.9.0/envs/tools"})
        assert output.read_text().strip() == "after 3.9.0/envs/tools"


class TestDiscoverHooks:
    def test_scripts_then_configured_commands(self, make_config, pyenv_root, tmp_path):
        (pyenv_root / "virtualenv.yaml").write_text(
            "hooks:\n  before:\n    - 'true'\n  after:\n    - 'exit 3'\n"
        )
        config = make_config()
        script = write_script(tmp_path / "plugin.bash", 'echo "$HOOK_STAGE" >> "$FAKE_LOG"\n')

        registry = discover_hooks(config, [script])

        assert [hook.label for hook in registry.for_stage(BEFORE)] == [str(script), "true"]
        assert [hook.label for hook in registry.for_stage(AFTER)] == [str(script), "exit 3"]
        registry.run(BEFORE, config, {})
        with pytest.raises(HookError):
            registry.run(AFTER, config, {})


class TestPluginScripts:
    """Scripts registered through `pyenv hooks virtualenv`"""

    def test_stage_functions(self, config, tmp_path, fake_log):
        script = write_script(
            tmp_path / "plugin.bash",
            "before_virtualenv 'echo \"before $VIRTUALENV_NAME\" >> \"$FAKE_LOG\"'\n"
            "after_virtualenv 'echo \"after $VIRTUALENV_NAME\" >> \"$FAKE_LOG\"'\n",
        )
        registry = discover_hooks(config, [script])
        context = {"VIRTUALENV_NAME": "3.9.0/envs/tools"}

        registry.run(BEFORE, config, context)
        assert fake_log.read_text().splitlines() == ["before 3.9.0/envs/tools"]

        registry.run(AFTER, config, context)
        assert fake_log.read_text().splitlines() == [
            "before 3.9.0/envs/tools",
            "after 3.9.0/envs/tools",
        ]

    def test_failing_stage_command(self, config, tmp_path):
        script = write_script(tmp_path / "plugin.bash", "before_virtualenv 'exit 4'\n")
        registry = discover_hooks(config, [script])
        with pytest.raises(HookError) as excinfo:
            registry.run(BEFORE, config, {})
        assert excinfo.value.exit_code == 4
        registry.run(AFTER, config, {})
