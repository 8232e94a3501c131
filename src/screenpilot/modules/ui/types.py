"""
UI types and the collaborator protocols used by the step engine.

These are typing-only contracts; concrete implementations live in
``modules.emu`` (adb target) and ``modules.ui.describer`` (perception pass).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from ..ocr.types import TapPoint
from ..vision.types import DetectedIcon


@dataclass(frozen=True)
class WindowInfo:
    """Window / control surface geometry in points."""

    width: float
    height: float
    orientation: str = "portrait"


@dataclass(frozen=True)
class InputResult:
    """Outcome of an input action that can also carry a warning."""

    success: bool
    error: Optional[str] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class DescribeResult:
    """One perception pass: recognized text points plus detected icons."""

    elements: List[TapPoint]
    icons: List[DetectedIcon] = field(default_factory=list)
    screenshot: Optional[bytes] = None

    @property
    def texts(self) -> List[str]:
        return [e.text for e in self.elements]

    @property
    def hints(self) -> List[str]:
        """Detected icons without a text label, as "icon at (x, y)"."""
        return [f"icon at ({i.tap_x:.0f}, {i.tap_y:.0f})" for i in self.icons]

    @property
    def listing(self) -> List[str]:
        """Everything tappable on screen: recognized text first, then icons."""
        return self.texts + self.hints


class WindowBridge(Protocol):
    @property
    def target_name(self) -> str:
        ...

    def get_window_info(self) -> Optional[WindowInfo]:
        ...


class MenuActionCapable(Protocol):
    """Optional capability: trigger a menu item (Home Screen, App Switcher)."""

    def trigger_menu_action(self, menu: str, item: str) -> bool:
        ...


class InputProvider(Protocol):
    """Actuator. ``None`` means success; a string is the error message."""

    def tap(self, x: float, y: float) -> Optional[str]:
        ...

    def swipe(self, from_x: float, from_y: float, to_x: float, to_y: float, duration_ms: int) -> Optional[str]:
        ...

    def type_text(self, text: str) -> InputResult:
        ...

    def press_key(self, key: str, modifiers: Sequence[str] = ()) -> InputResult:
        ...

    def launch_app(self, name: str) -> Optional[str]:
        ...

    def open_url(self, url: str) -> Optional[str]:
        ...

    def shake(self) -> InputResult:
        ...


class ScreenDescriber(Protocol):
    def describe(self) -> Optional[DescribeResult]:
        """Run one perception pass. ``None`` when capture/recognition fails."""
        ...


class ScreenCapturer(Protocol):
    def capture_png(self) -> Optional[bytes]:
        ...


__all__ = [
    "WindowInfo",
    "InputResult",
    "DescribeResult",
    "WindowBridge",
    "MenuActionCapable",
    "InputProvider",
    "ScreenDescriber",
    "ScreenCapturer",
]
