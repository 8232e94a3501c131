from screenpilot.core.constants import MatchStrategy
from screenpilot.modules.ocr.types import TapPoint
from screenpilot.modules.ui.matcher import find_match, is_visible, normalize


def _p(text, x=100.0, y=100.0):
    return TapPoint(text=text, tap_x=x, tap_y=y, confidence=0.9)


def test_exact_match_wins_over_earlier_contains():
    elements = [_p("General Settings", y=100), _p("General", y=200)]

    match = find_match("General", elements)

    assert match is not None
    assert match.strategy == MatchStrategy.EXACT
    assert match.element.tap_y == 200


def test_contains_is_case_and_whitespace_insensitive():
    elements = [_p("Wi-Fi   Network")]

    match = find_match("wi-fi network", elements)

    assert match.strategy == MatchStrategy.CONTAINS


def test_contains_either_direction():
    elements = [_p("About")]

    match = find_match("About this phone", elements)

    assert match is not None
    assert match.strategy == MatchStrategy.CONTAINS


def test_case_insensitive_equality_beats_earlier_substring():
    elements = [_p("General Settings", y=100), _p("general", y=200)]

    match = find_match("General", elements)

    assert match.strategy == MatchStrategy.CONTAINS
    assert match.element.text == "general"


def test_label_in_text_beats_earlier_text_in_label():
    elements = [_p("Wi", y=100), _p("Wi-Fi Settings", y=200)]

    match = find_match("Wi-Fi", elements)

    assert match.element.text == "Wi-Fi Settings"


def test_text_in_label_used_when_nothing_contains_label():
    elements = [_p("Display", y=100), _p("Wi", y=200)]

    match = find_match("Wi-Fi", elements)

    assert match.element.text == "Wi"


def test_fuzzy_tolerates_ocr_typo():
    elements = [_p("Bluetooth"), _p("Battery")]

    match = find_match("Bluetoath", elements)

    assert match is not None
    assert match.strategy == MatchStrategy.FUZZY
    assert match.element.text == "Bluetooth"
    assert match.score >= 80


def test_fuzzy_below_threshold_returns_none():
    assert find_match("Privacy", [_p("Display"), _p("Sounds")]) is None


def test_short_labels_skip_fuzzy():
    assert find_match("ok", [_p("on")], fuzzy_threshold=0) is None


def test_fuzzy_tie_keeps_first_element():
    elements = [_p("Cameras", y=100), _p("Camerat", y=200)]

    match = find_match("Camerax", elements)

    assert match.element.tap_y == 100


def test_empty_inputs():
    assert find_match("", [_p("General")]) is None
    assert find_match("General", []) is None
    assert is_visible("General", []) is False


def test_normalize():
    assert normalize("  Hello \t World ") == "hello world"
