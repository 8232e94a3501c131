"""
Scenario step types

每种步骤一个不可变 dataclass，共同基类 SkillStep。
Measure 持有另一个 SkillStep 作为被计时的动作。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple


@dataclass(frozen=True)
class SkillStep:
    type_key: ClassVar[str] = ""

    @property
    def label_value(self) -> Optional[str]:
        """步骤的主要标签/取值，没有时为 None。"""
        return None

    @property
    def display_name(self) -> str:
        label = self.label_value
        if label is None:
            return self.type_key
        return f'{self.type_key}: "{label}"'


@dataclass(frozen=True)
class Launch(SkillStep):
    type_key: ClassVar[str] = "launch"
    app_name: str

    @property
    def label_value(self) -> Optional[str]:
        return self.app_name


@dataclass(frozen=True)
class Tap(SkillStep):
    type_key: ClassVar[str] = "tap"
    label: str

    @property
    def label_value(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class TypeText(SkillStep):
    type_key: ClassVar[str] = "type"
    text: str

    @property
    def label_value(self) -> Optional[str]:
        return self.text


@dataclass(frozen=True)
class PressKey(SkillStep):
    type_key: ClassVar[str] = "press_key"
    key: str
    modifiers: Tuple[str, ...] = ()

    @property
    def label_value(self) -> Optional[str]:
        return self.key

    @property
    def display_name(self) -> str:
        if not self.modifiers:
            return f'press_key: "{self.key}"'
        return f'press_key: "{self.key}" [{", ".join(self.modifiers)}]'


@dataclass(frozen=True)
class Swipe(SkillStep):
    type_key: ClassVar[str] = "swipe"
    direction: str

    @property
    def label_value(self) -> Optional[str]:
        return self.direction


@dataclass(frozen=True)
class WaitFor(SkillStep):
    type_key: ClassVar[str] = "wait_for"
    label: str
    # None 时使用执行器配置的默认超时
    timeout_seconds: Optional[int] = None

    @property
    def label_value(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class AssertVisible(SkillStep):
    type_key: ClassVar[str] = "assert_visible"
    label: str

    @property
    def label_value(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class AssertNotVisible(SkillStep):
    type_key: ClassVar[str] = "assert_not_visible"
    label: str

    @property
    def label_value(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class Screenshot(SkillStep):
    type_key: ClassVar[str] = "screenshot"
    label: str

    @property
    def label_value(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class Home(SkillStep):
    type_key: ClassVar[str] = "home"


@dataclass(frozen=True)
class OpenUrl(SkillStep):
    type_key: ClassVar[str] = "open_url"
    url: str

    @property
    def label_value(self) -> Optional[str]:
        return self.url


@dataclass(frozen=True)
class Shake(SkillStep):
    type_key: ClassVar[str] = "shake"


@dataclass(frozen=True)
class ScrollTo(SkillStep):
    type_key: ClassVar[str] = "scroll_to"
    label: str
    direction: str = "up"
    # None 时使用 settings.scroll_max_attempts
    max_scrolls: Optional[int] = None

    @property
    def label_value(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class ResetApp(SkillStep):
    type_key: ClassVar[str] = "reset_app"
    app_name: str

    @property
    def label_value(self) -> Optional[str]:
        return self.app_name


@dataclass(frozen=True)
class SetNetwork(SkillStep):
    type_key: ClassVar[str] = "set_network"
    mode: str

    @property
    def label_value(self) -> Optional[str]:
        return self.mode


@dataclass(frozen=True)
class Measure(SkillStep):
    type_key: ClassVar[str] = "measure"
    name: str
    action: SkillStep
    until: str
    max_seconds: Optional[float] = None

    @property
    def label_value(self) -> Optional[str]:
        return self.name


@dataclass(frozen=True)
class SwitchTarget(SkillStep):
    type_key: ClassVar[str] = "switch_target"
    name: str

    @property
    def label_value(self) -> Optional[str]:
        return self.name


@dataclass(frozen=True)
class Skipped(SkillStep):
    """无法确定性执行的步骤（未知类型等），执行时直接标记为 SKIP。"""

    type_key: ClassVar[str] = "skipped"
    step_type: str
    reason: str

    @property
    def display_name(self) -> str:
        return f"{self.step_type} (skipped)"


@dataclass(frozen=True)
class Scenario:
    name: str
    file_path: str
    steps: List[SkillStep] = field(default_factory=list)
    description: str = ""
    app: Optional[str] = None


__all__ = [
    "SkillStep",
    "Launch",
    "Tap",
    "TypeText",
    "PressKey",
    "Swipe",
    "WaitFor",
    "AssertVisible",
    "AssertNotVisible",
    "Screenshot",
    "Home",
    "OpenUrl",
    "Shake",
    "ScrollTo",
    "ResetApp",
    "SetNetwork",
    "Measure",
    "SwitchTarget",
    "Skipped",
    "Scenario",
]
