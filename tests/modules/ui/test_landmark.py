from screenpilot.modules.ocr.types import TapPoint
from screenpilot.modules.ui.landmark import are_equal, fingerprint, is_unstable, pick_landmark


def _p(text, y, conf=0.9, x=100.0):
    return TapPoint(text=text, tap_x=x, tap_y=y, confidence=conf)


def test_header_zone_preferred_over_higher_candidates():
    elements = [_p("Search here", 90), _p("Settings", 180), _p("General", 300)]

    assert pick_landmark(elements) == "Settings"


def test_falls_back_to_topmost_candidate():
    elements = [_p("General", 400), _p("Privacy", 320)]

    assert pick_landmark(elements) == "Privacy"


def test_unstable_and_weak_elements_ignored():
    elements = [
        _p("9:41", 150),
        _p("42", 160),
        _p("Carrier", 20),
        _p("ab", 170),
        _p("Blurry text", 175, conf=0.3),
    ]

    assert pick_landmark(elements) is None


def test_is_unstable():
    assert is_unstable(_p("Anything", 10))
    assert is_unstable(_p("12:30", 400))
    assert is_unstable(_p("100", 400))
    assert not is_unstable(_p("1000", 400))
    assert not is_unstable(_p("General", 400))


def test_fingerprint_sorted_and_filtered():
    elements = [_p("Zebra", 300), _p("9:41", 300), _p("Apple", 500), _p("Status", 30)]

    assert fingerprint(elements) == ["Apple", "Zebra"]


def test_are_equal_ignores_clock_and_order():
    before = [_p("General", 200), _p("10:01", 20), _p("About", 300)]
    after = [_p("About", 310), _p("General", 205), _p("10:02", 20)]

    assert are_equal(before, after)
    assert not are_equal(before, [_p("General", 200)])


def test_length_bounds_count_raw_text():
    padded_short = _p(" OK ", 150)
    padded_long = _p(" " + "a" * 39 + " ", 160)

    assert pick_landmark([padded_short, _p("Settings", 300)]) == " OK "
    assert pick_landmark([padded_long, _p("Settings", 300)]) == "Settings"
