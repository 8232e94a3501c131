import json

import pytest

from screenpilot.core.constants import CompiledAction
from screenpilot.modules.executor.compiled import (
    CompiledScenario,
    CompiledScenarioError,
    CompiledStep,
    DeviceInfo,
    SourceInfo,
    StepHints,
    check_staleness,
    compiled_path,
    load_compiled,
    save_compiled,
    sha256_bytes,
    sha256_file,
)

SOURCE = b"name: Check About\nsteps:\n  - tap: General\n"


def _compiled(sha, version=1, width=410.0, height=898.0):
    return CompiledScenario(
        version=version,
        source=SourceInfo(sha256=sha, compiled_at="2026-01-01T00:00:00Z"),
        device=DeviceInfo(window_width=width, window_height=height),
        steps=[
            CompiledStep(index=0, step_type="tap", label="General",
                         hints=StepHints.tap(x=100.0, y=250.0, confidence=0.95, strategy="exact")),
            CompiledStep(index=1, step_type="wait_for", label="About", hints=StepHints.sleep(1200)),
            CompiledStep(index=2, step_type="scroll_to", label="Privacy",
                         hints=StepHints.scroll_sequence(3, "up")),
            CompiledStep(index=3, step_type="home", hints=StepHints.passthrough()),
            CompiledStep(index=4, step_type="skipped", label=None, hints=None),
        ],
    )


@pytest.fixture()
def scenario_file(tmp_path):
    path = tmp_path / "check-about.yaml"
    path.write_bytes(SOURCE)
    return str(path)


def test_compiled_path_replaces_extension():
    assert compiled_path("apps/settings/check-about.yaml") == "apps/settings/check-about.compiled.json"
    assert compiled_path("flows/login.yml") == "flows/login.compiled.json"


def test_json_uses_camel_case_sorted_keys():
    data = json.loads(_compiled("abc").to_json())

    assert list(data) == sorted(data)
    assert data["device"] == {"orientation": "portrait", "windowHeight": 898.0, "windowWidth": 410.0}
    assert data["source"]["compiledAt"] == "2026-01-01T00:00:00Z"
    assert data["steps"][0]["type"] == "tap"
    assert data["steps"][0]["hints"] == {
        "compiledAction": "tap",
        "confidence": 0.95,
        "matchStrategy": "exact",
        "tapX": 100.0,
        "tapY": 250.0,
    }
    assert data["steps"][2]["hints"]["scrollCount"] == 3
    assert "hints" not in data["steps"][4]


def test_save_and_load(scenario_file):
    compiled = _compiled(sha256_bytes(SOURCE))

    path = save_compiled(compiled, scenario_file)
    loaded = load_compiled(scenario_file)

    assert path == compiled_path(scenario_file)
    assert loaded == compiled
    assert loaded.steps[1].hints.compiled_action == CompiledAction.SLEEP
    assert loaded.steps[1].hints.observed_delay_ms == 1200


def test_load_missing_returns_none(scenario_file):
    assert load_compiled(scenario_file) is None


def test_load_invalid_raises(scenario_file):
    with open(compiled_path(scenario_file), "w", encoding="utf-8") as f:
        f.write('{"version": 1, "steps": "nope"}')

    with pytest.raises(CompiledScenarioError):
        load_compiled(scenario_file)


def test_fresh_when_nothing_changed(scenario_file):
    compiled = _compiled(sha256_file(scenario_file))

    assert check_staleness(compiled, scenario_file, 410.0, 898.0).fresh is True


def test_version_mismatch_is_stale(scenario_file):
    staleness = check_staleness(_compiled(sha256_file(scenario_file), version=2), scenario_file, 410.0, 898.0)

    assert staleness.fresh is False
    assert staleness.reason == "compiled version 2 != current 1"


def test_source_change_is_stale(scenario_file):
    staleness = check_staleness(_compiled("abc"), scenario_file, 410.0, 898.0)

    assert staleness.fresh is False
    assert staleness.reason == "source file has changed since compilation"


@pytest.mark.parametrize("width,height", [(393.0, 898.0), (410.0, 852.0)])
def test_dimension_change_is_stale(scenario_file, width, height):
    staleness = check_staleness(_compiled(sha256_file(scenario_file)), scenario_file, width, height)

    assert staleness.fresh is False
    assert staleness.reason == f"window dimensions changed: compiled 410x898 vs current {int(width)}x{int(height)}"


def test_unreadable_source_skips_hash_check(tmp_path):
    missing = str(tmp_path / "gone.yaml")

    assert check_staleness(_compiled("abc"), missing, 410.0, 898.0).fresh is True
