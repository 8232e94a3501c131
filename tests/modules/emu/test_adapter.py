import subprocess

import pytest

from screenpilot.core.constants import MENU_APP_SWITCHER, MENU_HOME_SCREEN, MENU_VIEW
from screenpilot.modules.emu.adapter import AdbTarget
from screenpilot.modules.emu.adb import Adb, AdbError


class DummyAdb:
    def __init__(self, size=(1080, 2400), fail=()):
        self.serial = "emulator-5554"
        self.size = size
        self.fail = set(fail)
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise AdbError(f"{name} boom")

    def wm_size(self):
        self._call("wm_size")
        return self.size

    def tap(self, x, y):
        self._call("tap", x, y)

    def swipe(self, x1, y1, x2, y2, dur_ms):
        self._call("swipe", x1, y1, x2, y2, dur_ms)

    def input_text(self, text):
        self._call("input_text", text)

    def keyevent(self, code):
        self._call("keyevent", code)

    def start_app_monkey(self, pkg):
        self._call("start_app_monkey", pkg)

    def open_url(self, url):
        self._call("open_url", url)

    def screencap(self):
        self._call("screencap")
        return b"png-bytes"


def test_window_info_scaled_to_points():
    target = AdbTarget(adb=DummyAdb(size=(1080, 2400)), point_scale=2.0)

    info = target.get_window_info()

    assert (info.width, info.height, info.orientation) == (540.0, 1200.0, "portrait")
    assert target.target_name == "emulator-5554"


def test_landscape_orientation():
    info = AdbTarget(adb=DummyAdb(size=(2400, 1080)), point_scale=1.0).get_window_info()

    assert info.orientation == "landscape"


def test_window_info_failure_returns_none():
    target = AdbTarget(adb=DummyAdb(fail={"wm_size"}), point_scale=1.0)

    assert target.get_window_info() is None


def test_tap_and_swipe_scaled_to_pixels():
    adb = DummyAdb()
    target = AdbTarget(adb=adb, point_scale=2.5)

    assert target.tap(100.0, 200.4) is None
    assert target.swipe(10.0, 20.0, 10.0, 80.0, 300) is None

    assert adb.calls == [("tap", 250, 501), ("swipe", 25, 50, 25, 200, 300)]


def test_adb_errors_become_messages():
    target = AdbTarget(adb=DummyAdb(fail={"tap", "swipe", "start_app_monkey", "open_url"}), point_scale=1.0)

    assert target.tap(1, 2) == "Tap failed: tap boom"
    assert target.swipe(1, 2, 3, 4, 100) == "Swipe failed: swipe boom"
    assert target.launch_app("com.example") == "Launch failed: start_app_monkey boom"
    assert target.open_url("https://example.com") == "Open URL failed: open_url boom"


def test_press_key_maps_names_and_reports_modifiers():
    adb = DummyAdb()
    target = AdbTarget(adb=adb, point_scale=1.0)

    plain = target.press_key("Return")
    with_mods = target.press_key("tab", ("shift",))
    unknown = target.press_key("F13")

    assert plain.success and plain.warning is None
    assert with_mods.success and with_mods.warning == "modifiers ignored on adb: shift"
    assert not unknown.success and unknown.error == "Unknown key: F13"
    assert adb.calls == [("keyevent", "KEYCODE_ENTER"), ("keyevent", "KEYCODE_TAB")]


def test_menu_actions():
    adb = DummyAdb()
    target = AdbTarget(adb=adb, point_scale=1.0)

    assert target.trigger_menu_action(MENU_VIEW, MENU_HOME_SCREEN) is True
    assert target.trigger_menu_action(MENU_VIEW, MENU_APP_SWITCHER) is True
    assert target.trigger_menu_action(MENU_VIEW, "Rotate") is False
    assert adb.calls == [("keyevent", "KEYCODE_HOME"), ("keyevent", "KEYCODE_APP_SWITCH")]


def test_shake_unsupported_and_capture():
    target = AdbTarget(adb=DummyAdb(), point_scale=1.0)

    assert target.shake().success is False
    assert target.capture_png() == b"png-bytes"
    assert AdbTarget(adb=DummyAdb(fail={"screencap"}), point_scale=1.0).capture_png() is None


def _completed(stdout=b"", returncode=0, stderr=b""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_wm_size_prefers_override(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return _completed(b"Physical size: 1080x2400\nOverride size: 720x1600\n")

    monkeypatch.setattr("screenpilot.modules.emu.adb.subprocess.run", fake_run)

    assert Adb("adb", "serial-1").wm_size() == (720, 1600)
    assert calls[0] == ["adb", "-s", "serial-1", "shell", "wm", "size"]


def test_input_text_escapes_spaces(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return _completed()

    monkeypatch.setattr("screenpilot.modules.emu.adb.subprocess.run", fake_run)

    Adb("adb").input_text("hello big world")

    assert calls[0] == ["adb", "shell", "input", "text", "hello%sbig%sworld"]


def test_shell_failure_raises(monkeypatch):
    monkeypatch.setattr(
        "screenpilot.modules.emu.adb.subprocess.run",
        lambda cmd, **kwargs: _completed(returncode=1, stderr=b"error: no devices"),
    )

    with pytest.raises(AdbError, match="no devices"):
        Adb("adb").tap(1, 2)


def test_missing_binary_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("screenpilot.modules.emu.adb.subprocess.run", fake_run)

    with pytest.raises(AdbError):
        Adb("/nope/adb").devices()
