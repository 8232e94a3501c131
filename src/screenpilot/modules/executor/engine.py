"""
步骤执行引擎

把场景中的每个 SkillStep 分派到感知 / 输入 / 截图接口上执行，返回 StepResult。
步骤失败以 StepResult(FAILED) 表示，不抛异常。

线程约定：StepExecutor 不可重入，只能在单线程中顺序调用 execute()。
switch_target 会整体替换内部的接口引用，不做同步。
"""
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ...core.config import settings
from ...core.constants import (
    MENU_APP_SWITCHER,
    MENU_HOME_SCREEN,
    MENU_VIEW,
    NETWORK_MODE_LABELS,
    NETWORK_MODES,
    StepStatus,
)
from ...core.logger import logger
from ..emu.targets import TargetRegistry
from ..ocr.recognize import PerceptionError
from ..ui.landmark import fingerprint
from ..ui.matcher import find_match, is_visible
from ..ui.types import (
    DescribeResult,
    InputProvider,
    MenuActionCapable,
    ScreenCapturer,
    ScreenDescriber,
    WindowBridge,
    WindowInfo,
)
from .steps import (
    AssertNotVisible,
    AssertVisible,
    Launch,
    Measure,
    OpenUrl,
    PressKey,
    ResetApp,
    Screenshot,
    ScrollTo,
    SetNetwork,
    SkillStep,
    Skipped,
    Swipe,
    SwitchTarget,
    Tap,
    TypeText,
    WaitFor,
)

CAPTURE_FAILED = "Failed to capture screen for OCR"
SKIPPED_AFTER_FAILURE = "Skipped due to previous failure"


@dataclass(frozen=True)
class StepResult:
    step: SkillStep
    status: StepStatus
    message: Optional[str]
    duration_seconds: float


@dataclass(frozen=True)
class StepExecutorConfig:
    wait_for_timeout_seconds: int
    settling_delay_ms: int
    screenshot_dir: str
    dry_run: bool = False

    @classmethod
    def from_settings(cls, **overrides) -> "StepExecutorConfig":
        values = dict(
            wait_for_timeout_seconds=settings.wait_for_timeout_seconds,
            settling_delay_ms=settings.step_settling_delay_ms,
            screenshot_dir=settings.screenshot_dir,
            dry_run=False,
        )
        values.update(overrides)
        return cls(**values)


SwipePath = Tuple[float, float, float, float]


def swipe_endpoints(direction: str, window: WindowInfo) -> Optional[SwipePath]:
    """按方向计算以窗口中心为中点的滑动起止点，未知方向返回 None。"""
    cx = window.width / 2.0
    cy = window.height / 2.0
    half = window.height * settings.swipe_distance_fraction / 2.0

    d = direction.lower()
    if d == "up":
        return cx, cy + half, cx, cy - half
    if d == "down":
        return cx, cy - half, cx, cy + half
    if d == "left":
        return cx + half, cy, cx - half, cy
    if d == "right":
        return cx - half, cy, cx + half, cy
    return None


def _safe_name(name: str) -> str:
    return name.replace(" ", "_")


def _visible_texts(result: DescribeResult) -> str:
    return ", ".join(result.listing)


@dataclass(frozen=True)
class _Subsystems:
    bridge: WindowBridge
    input: InputProvider
    describer: ScreenDescriber
    capture: ScreenCapturer
    menu: Optional[MenuActionCapable]


class StepExecutor:
    def __init__(
        self,
        bridge: WindowBridge,
        input: InputProvider,
        describer: ScreenDescriber,
        capture: ScreenCapturer,
        *,
        menu: Optional[MenuActionCapable] = None,
        config: Optional[StepExecutorConfig] = None,
        registry: Optional[TargetRegistry] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._subsystems = _Subsystems(bridge, input, describer, capture, menu)
        self.config = config or StepExecutorConfig.from_settings()
        self._registry = registry
        self._sleep = sleep
        self._clock = clock
        self._log = logger.bind(module="StepExecutor")

    @property
    def bridge(self) -> WindowBridge:
        return self._subsystems.bridge

    @property
    def input(self) -> InputProvider:
        return self._subsystems.input

    @property
    def describer(self) -> ScreenDescriber:
        return self._subsystems.describer

    @property
    def capture(self) -> ScreenCapturer:
        return self._subsystems.capture

    @property
    def menu(self) -> Optional[MenuActionCapable]:
        return self._subsystems.menu

    @property
    def sleep(self) -> Callable[[float], None]:
        return self._sleep

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def settle(self) -> None:
        """步骤间的 UI 稳定等待。"""
        self._sleep(self.config.settling_delay_ms / 1000.0)

    def execute(self, step: SkillStep, step_index: int, scenario_name: str) -> StepResult:
        """执行单个步骤。

        Args:
            step: 要执行的步骤
            step_index: 步骤在场景中的下标（从 0 开始）
            scenario_name: 场景名，用于截图文件名
        """
        start = self._clock()

        if self.config.dry_run:
            return self._result(step, StepStatus.PASSED, "dry run", start)

        self._log.debug(f"[{step_index + 1}] {step.display_name}")

        if isinstance(step, Skipped):
            result = self._result(step, StepStatus.SKIPPED, f"{step.step_type}: {step.reason}", start)
        elif isinstance(step, Measure):
            result = self._measure(step, step_index, scenario_name, start)
        elif isinstance(step, Screenshot):
            result = self._screenshot(step, scenario_name, start)
        else:
            handler = getattr(self, f"_{step.type_key}")
            result = handler(step, start)

        if result.status == StepStatus.FAILED:
            self._log.debug(f"[{step_index + 1}] 失败: {result.message}")
            self._capture_failure_screenshot(step_index, scenario_name)

        if result.status != StepStatus.SKIPPED:
            self.settle()

        return result

    # ── helpers ──

    def _elapsed(self, start: float) -> float:
        return self._clock() - start

    def _result(self, step: SkillStep, status: StepStatus, message: Optional[str], start: float) -> StepResult:
        return StepResult(step=step, status=status, message=message, duration_seconds=self._elapsed(start))

    def describe(self) -> Optional[DescribeResult]:
        """一次感知；失败时返回 None。"""
        try:
            return self.describer.describe()
        except PerceptionError as e:
            self._log.warning(f"感知失败: {e}")
            return None

    def _write_png(self, filename: str) -> Tuple[Optional[str], Optional[str]]:
        """截图并写入截图目录，返回 (路径, 错误)。"""
        data = self.capture.capture_png()
        if not data:
            return None, "Failed to capture screenshot"
        os.makedirs(self.config.screenshot_dir, exist_ok=True)
        path = os.path.join(self.config.screenshot_dir, filename)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            return None, f"Failed to save screenshot to {path}: {e}"
        return path, None

    def _capture_failure_screenshot(self, step_index: int, scenario_name: str) -> None:
        filename = f"{_safe_name(scenario_name)}_failure_step{step_index + 1}.png"
        try:
            path, error = self._write_png(filename)
        except OSError as e:
            self._log.warning(f"失败截图目录不可用: {e}")
            return
        if error:
            self._log.warning(f"失败截图未保存: {error}")
        else:
            self._log.debug(f"失败截图: {path}")

    def _return_home(self, menu: MenuActionCapable) -> None:
        menu.trigger_menu_action(MENU_VIEW, MENU_HOME_SCREEN)

    # ── 步骤实现 ──

    def _launch(self, step: Launch, start: float) -> StepResult:
        error = self.input.launch_app(step.app_name)
        if error:
            return self._result(step, StepStatus.FAILED, error, start)
        return self._result(step, StepStatus.PASSED, None, start)

    def _tap(self, step: Tap, start: float) -> StepResult:
        described = self.describe()
        if described is None:
            return self._result(step, StepStatus.FAILED, CAPTURE_FAILED, start)

        match = find_match(step.label, described.elements)
        if match is None:
            return self._result(
                step, StepStatus.FAILED,
                f'Element "{step.label}" not found on screen. Visible: [{_visible_texts(described)}]',
                start,
            )

        error = self.input.tap(match.element.tap_x, match.element.tap_y)
        if error:
            return self._result(step, StepStatus.FAILED, error, start)
        return self._result(step, StepStatus.PASSED, f"matched via {match.strategy.value}", start)

    def _type(self, step: TypeText, start: float) -> StepResult:
        res = self.input.type_text(step.text)
        if not res.success:
            return self._result(step, StepStatus.FAILED, res.error or "Type failed", start)
        return self._result(step, StepStatus.PASSED, res.warning, start)

    def _press_key(self, step: PressKey, start: float) -> StepResult:
        res = self.input.press_key(step.key, step.modifiers)
        if not res.success:
            return self._result(step, StepStatus.FAILED, res.error or "Press key failed", start)
        return self._result(step, StepStatus.PASSED, None, start)

    def _swipe(self, step: Swipe, start: float) -> StepResult:
        window = self.bridge.get_window_info()
        if window is None:
            return self._result(step, StepStatus.FAILED, "Could not get window info for swipe", start)

        path = swipe_endpoints(step.direction, window)
        if path is None:
            return self._result(
                step, StepStatus.FAILED,
                f"Unknown swipe direction: {step.direction}. Use up/down/left/right.",
                start,
            )

        error = self.input.swipe(*path, settings.swipe_duration_ms)
        if error:
            return self._result(step, StepStatus.FAILED, error, start)
        return self._result(step, StepStatus.PASSED, None, start)

    def _label_visible(self, label: str) -> bool:
        described = self.describe()
        return described is not None and is_visible(label, described.elements)

    def _wait_for(self, step: WaitFor, start: float) -> StepResult:
        timeout = step.timeout_seconds if step.timeout_seconds is not None else self.config.wait_for_timeout_seconds

        for _ in range(timeout):
            if self._label_visible(step.label):
                return self._result(step, StepStatus.PASSED, None, start)
            self._sleep(settings.wait_for_poll_interval)

        # 最后一次检查，避免错过最后一次 sleep 期间出现的元素
        if self._label_visible(step.label):
            return self._result(step, StepStatus.PASSED, None, start)

        return self._result(
            step, StepStatus.FAILED,
            f'Timed out waiting for "{step.label}" after {timeout}s',
            start,
        )

    def _assert_visible(self, step: AssertVisible, start: float) -> StepResult:
        described = self.describe()
        if described is None:
            return self._result(step, StepStatus.FAILED, CAPTURE_FAILED, start)
        if is_visible(step.label, described.elements):
            return self._result(step, StepStatus.PASSED, None, start)
        return self._result(
            step, StepStatus.FAILED,
            f'Expected "{step.label}" to be visible. Found: [{_visible_texts(described)}]',
            start,
        )

    def _assert_not_visible(self, step: AssertNotVisible, start: float) -> StepResult:
        described = self.describe()
        if described is None:
            return self._result(step, StepStatus.FAILED, CAPTURE_FAILED, start)
        if not is_visible(step.label, described.elements):
            return self._result(step, StepStatus.PASSED, None, start)
        return self._result(
            step, StepStatus.FAILED,
            f'Expected "{step.label}" to NOT be visible, but it was found',
            start,
        )

    def _screenshot(self, step: Screenshot, scenario_name: str, start: float) -> StepResult:
        filename = f"{_safe_name(scenario_name)}_{_safe_name(step.label)}.png"
        try:
            path, error = self._write_png(filename)
        except OSError as e:
            return self._result(step, StepStatus.FAILED, f"Failed to create screenshot dir: {e}", start)
        if error:
            return self._result(step, StepStatus.FAILED, error, start)
        return self._result(step, StepStatus.PASSED, f"saved to {path}", start)

    def _home(self, step: SkillStep, start: float) -> StepResult:
        menu = self.menu
        if menu is None:
            return self._result(
                step, StepStatus.FAILED,
                f"Target '{self.bridge.target_name}' does not support the home button",
                start,
            )
        if not menu.trigger_menu_action(MENU_VIEW, MENU_HOME_SCREEN):
            return self._result(step, StepStatus.FAILED, "Failed to trigger Home Screen menu action", start)
        return self._result(step, StepStatus.PASSED, None, start)

    def _open_url(self, step: OpenUrl, start: float) -> StepResult:
        error = self.input.open_url(step.url)
        if error:
            return self._result(step, StepStatus.FAILED, error, start)
        return self._result(step, StepStatus.PASSED, None, start)

    def _shake(self, step: SkillStep, start: float) -> StepResult:
        res = self.input.shake()
        if not res.success:
            return self._result(step, StepStatus.FAILED, res.error or "Shake failed", start)
        return self._result(step, StepStatus.PASSED, None, start)

    def _scroll_to(self, step: ScrollTo, start: float) -> StepResult:
        if self._label_visible(step.label):
            return self._result(step, StepStatus.PASSED, "already visible", start)

        window = self.bridge.get_window_info()
        if window is None:
            return self._result(step, StepStatus.FAILED, "Could not get window info for scroll", start)

        path = swipe_endpoints(step.direction, window)
        if path is None:
            return self._result(step, StepStatus.FAILED, f"Unknown direction: {step.direction}", start)

        max_scrolls = step.max_scrolls if step.max_scrolls is not None else settings.scroll_max_attempts
        previous: List[str] = []

        for attempt in range(1, max_scrolls + 1):
            error = self.input.swipe(*path, settings.swipe_duration_ms)
            if error:
                return self._result(step, StepStatus.FAILED, f"Swipe failed: {error}", start)

            self.settle()

            described = self.describe()
            if described is None:
                continue
            if is_visible(step.label, described.elements):
                return self._result(step, StepStatus.PASSED, f"found after {attempt} scroll(s)", start)

            # 内容不再变化，说明已经滚动到底
            current = fingerprint(described.elements)
            if current == previous:
                return self._result(
                    step, StepStatus.FAILED,
                    f"Scroll exhausted after {attempt} scroll(s) — content stopped changing",
                    start,
                )
            previous = current

        return self._result(step, StepStatus.FAILED, f"Not found after {max_scrolls} scroll(s)", start)

    def _reset_app(self, step: ResetApp, start: float) -> StepResult:
        menu = self.menu
        if menu is None:
            return self._result(
                step, StepStatus.FAILED,
                f"Target '{self.bridge.target_name}' does not support reset_app",
                start,
            )

        if not menu.trigger_menu_action(MENU_VIEW, MENU_APP_SWITCHER):
            return self._result(step, StepStatus.FAILED, "Failed to open App Switcher", start)

        self.settle()

        described = self.describe()
        if described is None:
            self._return_home(menu)
            return self._result(step, StepStatus.FAILED, "Failed to capture screen in App Switcher", start)

        match = find_match(step.app_name, described.elements)
        if match is None:
            self._return_home(menu)
            return self._result(step, StepStatus.PASSED, "App not in switcher (already quit)", start)

        # OCR 命中的是卡片上方的应用名，向下偏移到卡片主体再上滑
        card_x = match.element.tap_x
        card_y = match.element.tap_y + settings.app_switcher_card_offset
        to_y = max(0.0, card_y - settings.app_switcher_swipe_distance)
        error = self.input.swipe(card_x, card_y, card_x, to_y, settings.app_switcher_swipe_duration_ms)
        if error:
            self._return_home(menu)
            return self._result(step, StepStatus.FAILED, f"Failed to swipe app card: {error}", start)

        self.settle()
        self._return_home(menu)
        return self._result(step, StepStatus.PASSED, f"Force-quit {step.app_name}", start)

    def _set_network(self, step: SetNetwork, start: float) -> StepResult:
        menu = self.menu
        if menu is None:
            return self._result(
                step, StepStatus.FAILED,
                f"Target '{self.bridge.target_name}' does not support set_network",
                start,
            )

        if step.mode not in NETWORK_MODES:
            return self._result(
                step, StepStatus.FAILED,
                f"Unknown mode: {step.mode}. Use: {', '.join(NETWORK_MODES)}",
                start,
            )

        error = self.input.launch_app("Settings")
        if error:
            return self._result(step, StepStatus.FAILED, f"Failed to launch Settings: {error}", start)
        self._sleep(settings.settings_load_seconds)

        target = NETWORK_MODE_LABELS[step.mode.rsplit("_", 1)[0]]

        described = self.describe()
        if described is None:
            self._return_home(menu)
            return self._result(step, StepStatus.FAILED, "Failed to capture Settings screen", start)

        match = find_match(target, described.elements)
        if match is None:
            self._return_home(menu)
            return self._result(step, StepStatus.FAILED, f'"{target}" not found in Settings', start)

        error = self.input.tap(match.element.tap_x, match.element.tap_y)
        if error:
            self._return_home(menu)
            return self._result(step, StepStatus.FAILED, f"Failed to tap {target}: {error}", start)

        self.settle()
        self._return_home(menu)
        return self._result(step, StepStatus.PASSED, f"Toggled {step.mode}", start)

    def _measure(self, step: Measure, step_index: int, scenario_name: str, start: float) -> StepResult:
        action_result = self.execute(step.action, step_index, scenario_name)
        if action_result.status == StepStatus.FAILED:
            return self._result(
                step, StepStatus.FAILED,
                f"Action failed: {action_result.message or 'unknown'}",
                start,
            )

        measure_start = self._clock()
        timeout = step.max_seconds if step.max_seconds is not None else float(self.config.wait_for_timeout_seconds)

        # 每秒两次轮询
        for _ in range(int(timeout * 2)):
            if self._label_visible(step.until):
                measured = self._clock() - measure_start
                if step.max_seconds is not None and measured > step.max_seconds:
                    return self._result(
                        step, StepStatus.FAILED,
                        f"{step.name}: {measured:.3f}s exceeded {step.max_seconds:.1f}s max",
                        start,
                    )
                return self._result(step, StepStatus.PASSED, f"{step.name}: {measured:.3f}s", start)
            self._sleep(settings.measure_poll_interval)

        measured = self._clock() - measure_start
        return self._result(
            step, StepStatus.FAILED,
            f'{step.name}: timed out after {measured:.1f}s waiting for "{step.until}"',
            start,
        )

    def _switch_target(self, step: SwitchTarget, start: float) -> StepResult:
        if self._registry is None:
            return self._result(step, StepStatus.FAILED, "No target registry — cannot switch targets", start)

        ctx = self._registry.resolve(step.name)
        if ctx is None:
            available = ", ".join(self._registry.names())
            return self._result(
                step, StepStatus.FAILED,
                f"Unknown target '{step.name}'. Available: [{available}]",
                start,
            )

        self._subsystems = _Subsystems(ctx.bridge, ctx.input, ctx.describer, ctx.capture, ctx.menu)
        self._log.info(f"切换目标: {step.name}")
        return self._result(step, StepStatus.PASSED, f"Switched to target '{step.name}'", start)


def run_steps(
    executor: StepExecutor,
    steps: Sequence[SkillStep],
    scenario_name: str,
    on_result: Optional[Callable[[int, StepResult], None]] = None,
) -> List[StepResult]:
    """顺序执行步骤；第一个失败之后的步骤标记为 SKIP，不再执行。

    on_result 在每一步（含 SKIP）结束后以 (下标, 结果) 调用。
    """
    results: List[StepResult] = []
    failed = False
    for i, step in enumerate(steps):
        if failed:
            result = StepResult(step, StepStatus.SKIPPED, SKIPPED_AFTER_FAILURE, 0.0)
        else:
            result = executor.execute(step, i, scenario_name)
            failed = result.status == StepStatus.FAILED
        results.append(result)
        if on_result is not None:
            on_result(i, result)
    return results


__all__ = [
    "CAPTURE_FAILED",
    "SKIPPED_AFTER_FAILURE",
    "StepResult",
    "StepExecutorConfig",
    "StepExecutor",
    "swipe_endpoints",
    "run_steps",
]
