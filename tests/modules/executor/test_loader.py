import pytest

from screenpilot.core.config import settings
from screenpilot.modules.executor.loader import (
    AI_ONLY_REASON,
    UNSUPPORTED_REASON,
    ScenarioLoadError,
    discover_scenarios,
    load_scenario,
    parse_scenario,
    parse_step,
    substitute_env_vars,
)
from screenpilot.modules.executor.steps import (
    Home,
    Launch,
    Measure,
    PressKey,
    ScrollTo,
    Shake,
    Skipped,
    SwitchTarget,
    Tap,
    WaitFor,
)

SCENARIO_YAML = """
name: Check About
description: open settings and check about
app: Settings
steps:
  - launch: "Settings"
  - tap: "General"
  - wait_for: {label: "About", timeout: 10}
  - press_key: "l+command"
  - scroll_to: {label: "Privacy", direction: down, max_scrolls: 5}
  - measure: {name: open_time, action: {tap: "About"}, until: "Model Name", max_seconds: 3}
  - remember: "the version number"
  - home
"""


def test_parse_full_scenario():
    scenario = parse_scenario(SCENARIO_YAML, file_path="apps/settings/check-about.yaml")

    assert scenario.name == "Check About"
    assert scenario.app == "Settings"
    assert scenario.description == "open settings and check about"
    assert scenario.steps == [
        Launch("Settings"),
        Tap("General"),
        WaitFor("About", timeout_seconds=10),
        PressKey("l", ("command",)),
        ScrollTo("Privacy", direction="down", max_scrolls=5),
        Measure(name="open_time", action=Tap("About"), until="Model Name", max_seconds=3.0),
        Skipped("remember", AI_ONLY_REASON),
        Home(),
    ]


def test_name_falls_back_to_file_stem():
    scenario = parse_scenario("steps:\n  - home\n", file_path="flows/login-smoke.yaml")

    assert scenario.name == "login-smoke"
    assert scenario.app is None


def test_bare_string_steps():
    assert parse_step("home") == Home()
    assert parse_step("press_home") == Home()
    assert parse_step("shake") == Shake()
    assert parse_step("summarize") == Skipped("summarize", AI_ONLY_REASON)
    assert parse_step("dance") == Skipped("dance", UNSUPPORTED_REASON)


def test_unknown_mapping_step_is_skipped():
    assert parse_step({"drag": {"from": "a", "to": "b"}}) == Skipped("drag", UNSUPPORTED_REASON)


def test_press_key_mapping_form():
    assert parse_step({"press_key": {"key": "return", "modifiers": ["shift"]}}) == PressKey("return", ("shift",))
    assert parse_step({"press_key": "escape"}) == PressKey("escape")


def test_wait_for_string_form_uses_default_timeout():
    assert parse_step({"wait_for": "About"}) == WaitFor("About", timeout_seconds=None)


def test_scroll_to_defaults():
    step = parse_step({"scroll_to": "Privacy"})

    assert step == ScrollTo("Privacy", direction="up", max_scrolls=settings.scroll_max_attempts)


def test_measure_inline_action_and_max_alias():
    step = parse_step({"measure": {"tap": "Login", "until": "Dashboard", "name": "login", "max": 5}})

    assert step == Measure(name="login", action=Tap("Login"), until="Dashboard", max_seconds=5.0)


def test_measure_without_action():
    step = parse_step({"measure": {"until": "Dashboard"}})

    assert isinstance(step.action, Skipped)
    assert step.name == "measure"


def test_target_alias():
    assert parse_step({"target": "tablet"}) == SwitchTarget("tablet")
    assert parse_step({"switch_target": "tablet"}) == SwitchTarget("tablet")


def test_structural_errors_raise():
    with pytest.raises(ScenarioLoadError):
        parse_step({"tap": "a", "type": "b"})
    with pytest.raises(ScenarioLoadError):
        parse_step({"tap": ["a", "b"]})
    with pytest.raises(ScenarioLoadError):
        parse_step(42)
    with pytest.raises(ScenarioLoadError):
        parse_scenario("name: x\nsteps: home\n")
    with pytest.raises(ScenarioLoadError):
        parse_scenario("- just\n- a list\n")
    with pytest.raises(ScenarioLoadError):
        parse_scenario("steps: [unclosed\n")


def test_step_error_mentions_position():
    with pytest.raises(ScenarioLoadError, match="第 2 步"):
        parse_scenario("steps:\n  - home\n  - wait_for: {timeout: 3}\n", file_path="x.yaml")


def test_env_vars_substituted(monkeypatch):
    monkeypatch.setenv("SP_USER", "alice")
    monkeypatch.delenv("SP_MISSING", raising=False)

    assert substitute_env_vars("type: ${SP_USER} ${SP_MISSING}") == "type: alice ${SP_MISSING}"

    scenario = parse_scenario('steps:\n  - type: "${SP_USER}"\n')
    assert scenario.steps[0].text == "alice"


def test_load_and_discover(tmp_path):
    (tmp_path / "b.yaml").write_text("name: B\nsteps:\n  - home\n", encoding="utf-8")
    (tmp_path / "a.yml").write_text("name: A\nsteps:\n  - shake\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignore me", encoding="utf-8")
    (tmp_path / "a.compiled.json").write_text("{}", encoding="utf-8")

    files = discover_scenarios([str(tmp_path)])

    assert [f.rsplit("/", 1)[-1] for f in files] == ["a.yml", "b.yaml"]
    assert load_scenario(files[1]).name == "B"


def test_discover_missing_path_raises(tmp_path):
    with pytest.raises(ScenarioLoadError):
        discover_scenarios([str(tmp_path / "missing.yaml")])


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(ScenarioLoadError):
        load_scenario(str(tmp_path / "missing.yaml"))
