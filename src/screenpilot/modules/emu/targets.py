"""目标注册表：名称 → 一组执行引擎依赖（bridge / input / describer / capture / menu）。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ...core.logger import logger
from ..ui.describer import OcrScreenDescriber
from ..ui.types import (
    InputProvider,
    MenuActionCapable,
    ScreenCapturer,
    ScreenDescriber,
    WindowBridge,
)
from .adapter import AdbTarget


@dataclass(frozen=True)
class TargetContext:
    bridge: WindowBridge
    input: InputProvider
    describer: ScreenDescriber
    capture: ScreenCapturer
    # 可选能力，不支持菜单操作的目标为 None
    menu: Optional[MenuActionCapable] = None

    @classmethod
    def for_adb(cls, target: AdbTarget) -> "TargetContext":
        """用一个 AdbTarget 组装完整上下文。"""
        return cls(
            bridge=target,
            input=target,
            describer=OcrScreenDescriber(target, target),
            capture=target,
            menu=target,
        )


class TargetRegistry:
    def __init__(self, targets: Optional[Dict[str, TargetContext]] = None) -> None:
        self._targets: Dict[str, TargetContext] = dict(targets or {})
        self._log = logger.bind(module="TargetRegistry")

    def register(self, name: str, ctx: TargetContext) -> None:
        if name in self._targets:
            self._log.warning(f"目标已存在，覆盖: {name}")
        self._targets[name] = ctx

    def resolve(self, name: str) -> Optional[TargetContext]:
        return self._targets.get(name)

    def names(self) -> List[str]:
        return sorted(self._targets)

    def __len__(self) -> int:
        return len(self._targets)
