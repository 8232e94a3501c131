from typing import List, Optional

import pytest

from screenpilot.modules.executor.engine import StepExecutor, StepExecutorConfig
from screenpilot.modules.ocr.types import TapPoint
from screenpilot.modules.ui.types import DescribeResult, InputResult, WindowInfo


def _screen(*texts, x=100.0, y0=200.0, step=50.0) -> List[TapPoint]:
    """按顺序在同一列竖排生成文字元素。"""
    return [TapPoint(text=t, tap_x=x, tap_y=y0 + i * step, confidence=0.9) for i, t in enumerate(texts)]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class DummyBridge:
    def __init__(self, name="phone", info=WindowInfo(410.0, 898.0)) -> None:
        self.name = name
        self.info = info

    @property
    def target_name(self) -> str:
        return self.name

    def get_window_info(self) -> Optional[WindowInfo]:
        return self.info


class DummyInput:
    def __init__(self, errors=None, type_warning=None) -> None:
        self.errors = dict(errors or {})
        self.type_warning = type_warning
        self.calls = []

    def tap(self, x, y):
        self.calls.append(("tap", x, y))
        return self.errors.get("tap")

    def swipe(self, from_x, from_y, to_x, to_y, duration_ms):
        self.calls.append(("swipe", from_x, from_y, to_x, to_y, duration_ms))
        return self.errors.get("swipe")

    def type_text(self, text):
        self.calls.append(("type_text", text))
        if "type_text" in self.errors:
            return InputResult(success=False, error=self.errors["type_text"])
        return InputResult(success=True, warning=self.type_warning)

    def press_key(self, key, modifiers=()):
        self.calls.append(("press_key", key, tuple(modifiers)))
        if "press_key" in self.errors:
            return InputResult(success=False, error=self.errors["press_key"])
        return InputResult(success=True)

    def launch_app(self, name):
        self.calls.append(("launch_app", name))
        return self.errors.get("launch_app")

    def open_url(self, url):
        self.calls.append(("open_url", url))
        return self.errors.get("open_url")

    def shake(self):
        self.calls.append(("shake",))
        if "shake" in self.errors:
            return InputResult(success=False, error=self.errors["shake"])
        return InputResult(success=True)


class ScriptedDescriber:
    """依次返回预设的屏幕，用完后重复最后一个。None 表示感知失败。也可直接给出 DescribeResult。"""

    def __init__(self, screens, clock: Optional[FakeClock] = None, cost: float = 0.0) -> None:
        self.screens = list(screens)
        self.clock = clock
        self.cost = cost
        self.calls = 0

    def describe(self) -> Optional[DescribeResult]:
        if self.clock is not None and self.cost:
            self.clock.now += self.cost
        idx = min(self.calls, len(self.screens) - 1)
        self.calls += 1
        elements = self.screens[idx]
        if elements is None:
            return None
        if isinstance(elements, DescribeResult):
            return elements
        return DescribeResult(elements=list(elements))


class DummyCapture:
    def __init__(self, png: Optional[bytes] = b"\x89PNG") -> None:
        self.png = png

    def capture_png(self):
        return self.png


class DummyMenu:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls = []

    def trigger_menu_action(self, menu, item):
        self.calls.append((menu, item))
        return self.ok


class Harness:
    def __init__(self, tmp_path, screens, *, with_menu=False, menu_ok=True, errors=None, registry=None,
                 dry_run=False, timeout=5, describe_cost=0.0, capture_png=b"\x89PNG") -> None:
        self.clock = FakeClock()
        self.bridge = DummyBridge()
        self.input = DummyInput(errors)
        self.describer = ScriptedDescriber(screens, clock=self.clock, cost=describe_cost)
        self.capture = DummyCapture(capture_png)
        self.menu = DummyMenu(menu_ok) if with_menu else None
        self.config = StepExecutorConfig(
            wait_for_timeout_seconds=timeout,
            settling_delay_ms=0,
            screenshot_dir=str(tmp_path / "shots"),
            dry_run=dry_run,
        )
        self.executor = StepExecutor(
            self.bridge, self.input, self.describer, self.capture,
            menu=self.menu,
            config=self.config,
            registry=registry,
            sleep=self.clock.sleep,
            clock=self.clock,
        )


@pytest.fixture()
def harness(tmp_path):
    def build(screens=((),), **kwargs) -> Harness:
        return Harness(tmp_path, screens, **kwargs)

    return build


@pytest.fixture()
def screen():
    return _screen
