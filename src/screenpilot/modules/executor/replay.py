"""编译回放：用缓存的坐标/时长/滚动次数执行步骤，不做 OCR。passthrough 交给普通执行器。"""
from __future__ import annotations

from typing import Optional

from ...core.config import settings
from ...core.constants import CompiledAction, StepStatus
from ...core.logger import logger
from .compiled import CompiledStep, StepHints
from .engine import StepExecutor, StepResult, swipe_endpoints
from .steps import SkillStep


class CompiledStepExecutor:
    def __init__(self, executor: StepExecutor, *, sleep_buffer_ms: Optional[int] = None) -> None:
        self.executor = executor
        self.sleep_buffer_ms = settings.compiled_sleep_buffer_ms if sleep_buffer_ms is None else sleep_buffer_ms
        self._log = logger.bind(module="CompiledStepExecutor")

    def _result(self, step: SkillStep, status: StepStatus, message: Optional[str], start: float) -> StepResult:
        return StepResult(step=step, status=status, message=message,
                          duration_seconds=self.executor.clock() - start)

    def execute(self, step: SkillStep, compiled_step: CompiledStep, step_index: int, scenario_name: str) -> StepResult:
        start = self.executor.clock()
        hints = compiled_step.hints
        if hints is None:
            return self._result(step, StepStatus.SKIPPED, "no compiled hints", start)

        action = hints.compiled_action
        if action == CompiledAction.TAP:
            return self._tap(step, hints, start)
        if action == CompiledAction.SLEEP:
            return self._sleep(step, hints, start)
        if action == CompiledAction.SCROLL_SEQUENCE:
            return self._scroll(step, hints, start)
        return self.executor.execute(step, step_index, scenario_name)

    def _tap(self, step: SkillStep, hints: StepHints, start: float) -> StepResult:
        if hints.tap_x is None or hints.tap_y is None:
            return self._result(step, StepStatus.FAILED, "compiled tap missing coordinates", start)

        error = self.executor.input.tap(hints.tap_x, hints.tap_y)
        if error:
            return self._result(step, StepStatus.FAILED, error, start)

        result = self._result(step, StepStatus.PASSED, f"compiled tap via {hints.match_strategy or 'compiled'}", start)
        self.executor.settle()
        return result

    def _sleep(self, step: SkillStep, hints: StepHints, start: float) -> StepResult:
        delay_ms = (hints.observed_delay_ms or 0) + self.sleep_buffer_ms
        if delay_ms > 0:
            self.executor.sleep(delay_ms / 1000.0)
        return self._result(step, StepStatus.PASSED, f"compiled sleep {delay_ms}ms", start)

    def _scroll(self, step: SkillStep, hints: StepHints, start: float) -> StepResult:
        count = hints.scroll_count or 0
        direction = hints.scroll_direction or "up"
        if count == 0:
            return self._result(step, StepStatus.PASSED, "compiled scroll: already visible", start)

        window = self.executor.bridge.get_window_info()
        if window is None:
            return self._result(step, StepStatus.FAILED, "Could not get window info for compiled scroll", start)

        path = swipe_endpoints(direction, window)
        if path is None:
            return self._result(step, StepStatus.FAILED, f"Unknown compiled scroll direction: {direction}", start)

        for i in range(count):
            error = self.executor.input.swipe(*path, settings.swipe_duration_ms)
            if error:
                return self._result(step, StepStatus.FAILED, f"Compiled scroll {i + 1}/{count} failed: {error}", start)
            self.executor.settle()

        return self._result(step, StepStatus.PASSED, f"compiled {count} scroll(s) {direction}", start)


__all__ = ["CompiledStepExecutor"]
