import threading

from screenpilot.modules.ocr.types import TapPoint
from screenpilot.modules.ui.session import ExplorationSession
from screenpilot.modules.ui.types import DescribeResult
from screenpilot.modules.vision.types import DetectedIcon


def _screen(*texts):
    return [TapPoint(text=t, tap_x=100.0, tap_y=200.0 + i * 40, confidence=0.9) for i, t in enumerate(texts)]


def test_start_capture_finalize():
    session = ExplorationSession()
    session.start("Settings", goal="find About")

    assert session.active is True
    assert session.capture(_screen("General", "Privacy"), action_type="launch") is True
    assert session.capture(_screen("About", "Software Update"), action_type="tap", arrived_via="General") is True
    assert session.screen_count == 2

    snapshot = session.finalize()

    assert snapshot.app_name == "Settings"
    assert snapshot.goal == "find About"
    assert [s.index for s in snapshot.screens] == [0, 1]
    assert snapshot.screens[1].arrived_via == "General"
    assert session.active is False
    assert session.screen_count == 0
    assert session.app_name == ""


def test_duplicate_screen_rejected():
    session = ExplorationSession()
    session.start("Settings")

    assert session.capture(_screen("General", "Privacy")) is True
    assert session.capture(_screen("Privacy", "General")) is False
    assert session.screen_count == 1


def test_finalize_without_start_returns_none():
    assert ExplorationSession().finalize() is None


def test_start_discards_previous_screens():
    session = ExplorationSession()
    session.start("Maps")
    session.capture(_screen("Search"))

    session.start("Photos")

    assert session.screen_count == 0
    assert session.app_name == "Photos"


def test_concurrent_captures_are_all_recorded():
    session = ExplorationSession()
    session.start("Settings")

    def worker(n):
        session.capture(_screen(f"Screen {n}"))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snapshot = session.finalize()
    assert len(snapshot.screens) == 20
    assert sorted(s.index for s in snapshot.screens) == list(range(20))


def test_capture_result_keeps_icons_as_hints():
    session = ExplorationSession()
    session.start("Settings")
    described = DescribeResult(
        elements=_screen("General"),
        icons=[DetectedIcon(tap_x=50.0, tap_y=850.0, estimated_size=24.0)],
        screenshot=b"png",
    )

    assert session.capture_result(described, action_type="tap", arrived_via="General") is True

    screen = session.finalize().screens[0]
    assert screen.hints == ["icon at (50, 850)"]
    assert screen.screenshot == b"png"
    assert screen.action_type == "tap"
