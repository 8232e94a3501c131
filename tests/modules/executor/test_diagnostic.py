import json

from screenpilot.modules.executor.compiled import CompiledStep, StepHints
from screenpilot.modules.executor.diagnostic import (
    Patch,
    Recommendation,
    build_payload,
    diagnose,
    format_report,
)
from screenpilot.modules.ui.types import DescribeResult
from screenpilot.modules.vision.types import DetectedIcon


class StaticDescriber:
    def __init__(self, elements):
        self.elements = elements
        self.calls = 0

    def describe(self):
        self.calls += 1
        if self.elements is None:
            return None
        return DescribeResult(elements=list(self.elements))


def _step(step_type, label, hints, index=1):
    return CompiledStep(index=index, step_type=step_type, label=label, hints=hints)


def test_tap_element_moved(screen):
    step = _step("tap", "About", StepHints.tap(100.0, 200.0, 0.9, "exact"))

    rec = diagnose(step, "Tap failed", StaticDescriber(screen("General", "About")))

    assert rec.diagnosis == 'Element "About" moved: compiled (100.0, 200.0) vs actual (100.0, 250.0)'
    assert rec.patches == [Patch("tapX", "100.0", "100.0"), Patch("tapY", "200.0", "250.0")]


def test_tap_element_at_same_position(screen):
    step = _step("tap", "General", StepHints.tap(102.0, 198.0, 0.9, "exact"))

    rec = diagnose(step, None, StaticDescriber(screen("General")))

    assert rec.diagnosis.startswith('Element "General" is at the compiled position')
    assert rec.patches == []


def test_tap_element_not_found(screen):
    step = _step("tap", "Privacy", StepHints.tap(100.0, 200.0, 0.9, "exact"))

    rec = diagnose(step, None, StaticDescriber(screen("General", "About")))

    assert rec.diagnosis == (
        'Element "Privacy" not found on screen. Visible: "General" (100.0, 200.0), "About" (100.0, 250.0)'
    )


def test_sleep_too_short_patches_delay(screen):
    step = _step("wait_for", "About", StepHints.sleep(1200))

    rec = diagnose(step, "not visible", StaticDescriber(screen("About")))

    assert "IS visible" in rec.diagnosis
    assert rec.patches == [Patch("observedDelayMs", "1200", "2200")]


def test_sleep_wrong_screen(screen):
    step = _step("assert_visible", "About", StepHints.sleep(300))

    rec = diagnose(step, None, StaticDescriber(screen("Wi-Fi", "Bluetooth")))

    assert rec.diagnosis == (
        'Element "About" not visible after compiled sleep. Screen shows: "Wi-Fi", "Bluetooth". '
        "Previous step may have navigated to wrong screen."
    )
    assert rec.patches == []


def test_assert_not_visible_variants(screen):
    step = _step("assert_not_visible", "Error", StepHints.sleep(300))

    hidden = diagnose(step, None, StaticDescriber(screen("General")))
    shown = diagnose(step, None, StaticDescriber(screen("Error")))

    assert hidden.diagnosis == 'Element "Error" is correctly not visible. Step should have passed.'
    assert shown.diagnosis.startswith('Element "Error" is unexpectedly visible')


def test_scroll_not_found_patches_count(screen):
    step = _step("scroll_to", "Privacy", StepHints.scroll_sequence(3, "up"))

    missing = diagnose(step, None, StaticDescriber(screen("General")))
    found = diagnose(step, None, StaticDescriber(screen("Privacy")))

    assert missing.patches == [Patch("scrollCount", "3", "5")]
    assert 'Visible: "General"' in missing.diagnosis
    assert found.diagnosis == 'Element "Privacy" IS visible after 3 scroll(s) — scroll count may need adjustment'


def test_passthrough_and_capture_failure(screen):
    step = _step("launch", "Settings", StepHints.passthrough(), index=0)

    rec = diagnose(step, "App not installed", StaticDescriber(screen("Home")))
    blind = diagnose(step, "App not installed", StaticDescriber(None))

    assert rec.diagnosis == 'Passthrough step failed: App not installed. Screen shows: "Home"'
    assert blind.diagnosis == "Cannot OCR screen for diagnosis (capture failed)"


def test_missing_hints_are_not_diagnosed():
    describer = StaticDescriber([])

    assert diagnose(_step("skipped", None, None), None, describer) is None
    assert describer.calls == 0


def test_format_report():
    recs = [
        Recommendation(1, "tap", "About", "moved", [Patch("tapY", "200.0", "250.0")]),
        Recommendation(2, "home", None, "Passthrough step failed: x"),
    ]

    report = format_report(recs, "Check About")

    assert report.splitlines() == [
        "",
        "--- Agent Diagnostic: Check About ---",
        "",
        'Step 2 [tap "About"]:',
        "  Diagnosis: moved",
        "  Fix: tapY: 200.0 -> 250.0",
        "",
        "Step 3 [home]:",
        "  Diagnosis: Passthrough step failed: x",
        "",
        "Recommendation: recompile the scenario or apply patches manually.",
        "---",
    ]
    assert format_report([], "Check About") == ""


def test_build_payload_uses_camel_case():
    recs = [Recommendation(0, "tap", "About", "moved", [Patch("tapX", "1.0", "2.0")])]

    data = json.loads(build_payload(recs, "Check About", "apps/check-about.yaml").to_json())

    assert data == {
        "skillName": "Check About",
        "skillFilePath": "apps/check-about.yaml",
        "failedSteps": [
            {
                "stepIndex": 0,
                "stepType": "tap",
                "label": "About",
                "deterministicDiagnosis": "moved",
                "patches": [{"field": "tapX", "was": "1.0", "shouldBe": "2.0"}],
            }
        ],
    }


def test_tap_not_found_lists_icons(screen):
    step = _step("tap", "Search", StepHints.tap(100.0, 200.0, 0.9, "exact"))
    described = DescribeResult(
        elements=screen("General"),
        icons=[DetectedIcon(tap_x=370.0, tap_y=60.0, estimated_size=20.0)],
    )

    class Fixed:
        def describe(self):
            return described

    rec = diagnose(step, None, Fixed())

    assert rec.diagnosis == 'Element "Search" not found on screen. Visible: "General" (100.0, 200.0), icon at (370, 60)'
