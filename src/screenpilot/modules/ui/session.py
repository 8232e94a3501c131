"""
探索会话

调用方持有的会话对象，记录探索应用时依次到达的屏幕。
所有方法由同一把锁保护，可被多个线程调用。
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ...core.logger import logger
from ..ocr.types import TapPoint
from .landmark import are_equal
from .types import DescribeResult


@dataclass(frozen=True)
class ExploredScreen:
    index: int
    elements: List[TapPoint]
    hints: List[str] = field(default_factory=list)
    # 到达本屏幕的动作类型（tap / swipe / type / press_key）
    action_type: Optional[str] = None
    # 动作关联的标签或值
    arrived_via: Optional[str] = None
    screenshot: Optional[bytes] = None


@dataclass(frozen=True)
class ExplorationSnapshot:
    app_name: str
    goal: str
    screens: List[ExploredScreen]


class ExplorationSession:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._screens: List[ExploredScreen] = []
        self._app_name = ""
        self._goal = ""
        self._active = False
        self._log = logger.bind(module="ExplorationSession")

    def start(self, app_name: str, goal: str = "") -> None:
        """开始新会话，丢弃之前的状态。"""
        with self._lock:
            self._screens = []
            self._app_name = app_name
            self._goal = goal
            self._active = True
        self._log.info(f"开始探索: {app_name} {goal}".rstrip())

    def capture(
        self,
        elements: Sequence[TapPoint],
        hints: Sequence[str] = (),
        action_type: Optional[str] = None,
        arrived_via: Optional[str] = None,
        screenshot: Optional[bytes] = None,
    ) -> bool:
        """记录一个屏幕。与上一个屏幕指纹相同时拒绝并返回 False。"""
        with self._lock:
            if self._screens and are_equal(self._screens[-1].elements, elements):
                return False
            self._screens.append(ExploredScreen(
                index=len(self._screens),
                elements=list(elements),
                hints=list(hints),
                action_type=action_type,
                arrived_via=arrived_via,
                screenshot=screenshot,
            ))
            return True

    def capture_result(
        self,
        result: DescribeResult,
        action_type: Optional[str] = None,
        arrived_via: Optional[str] = None,
    ) -> bool:
        """记录一次感知结果，图标作为 hints 一并保存。"""
        return self.capture(
            result.elements,
            hints=result.hints,
            action_type=action_type,
            arrived_via=arrived_via,
            screenshot=result.screenshot,
        )

    def finalize(self) -> Optional[ExplorationSnapshot]:
        """返回已记录的全部数据并重置；会话未开始时返回 None。"""
        with self._lock:
            if not self._active:
                return None
            snapshot = ExplorationSnapshot(
                app_name=self._app_name,
                goal=self._goal,
                screens=self._screens,
            )
            self._screens = []
            self._app_name = ""
            self._goal = ""
            self._active = False
        self._log.info(f"探索结束: {snapshot.app_name}, 共 {len(snapshot.screens)} 个屏幕")
        return snapshot

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    @property
    def screen_count(self) -> int:
        with self._lock:
            return len(self._screens)

    @property
    def app_name(self) -> str:
        with self._lock:
            return self._app_name

    @property
    def goal(self) -> str:
        with self._lock:
            return self._goal


__all__ = ["ExploredScreen", "ExplorationSnapshot", "ExplorationSession"]
