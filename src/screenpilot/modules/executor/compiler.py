"""
学习运行（编译）

用普通执行器完整执行一遍场景，感知经过 RecordingDescriber，
每步结束后根据最近一次感知结果和耗时生成 StepHints。
任何一步失败都中止编译，不写文件。
"""
from __future__ import annotations

import re
from typing import List, Optional

from ...core.constants import COMPILED_FORMAT_VERSION, CompiledAction, StepStatus
from ...core.logger import logger
from ..ui.describer import RecordingDescriber
from ..ui.matcher import find_match
from ..ui.types import DescribeResult, WindowInfo
from .compiled import (
    CompiledScenario,
    CompiledStep,
    DeviceInfo,
    SourceInfo,
    StepHints,
    save_compiled,
    sha256_file,
    utc_timestamp,
)
from .engine import StepExecutor, StepResult
from .steps import (
    AssertNotVisible,
    AssertVisible,
    Measure,
    Scenario,
    ScrollTo,
    SkillStep,
    Skipped,
    Tap,
    WaitFor,
)

_log = logger.bind(module="Compiler")

_SCROLL_COUNT_RE = re.compile(r"(\d+)\s+scroll")


class CompileError(RuntimeError):
    """学习运行中某一步失败。"""

    def __init__(self, scenario: str, step_index: int, result: StepResult) -> None:
        self.scenario = scenario
        self.step_index = step_index
        self.result = result
        super().__init__(
            f"{scenario}: step {step_index + 1} ({result.step.display_name}) failed: {result.message or 'unknown'}"
        )


def parse_scroll_count(message: Optional[str]) -> int:
    """从 "found after 3 scroll(s)" 中取出次数；"already visible" 为 0。"""
    if not message or message == "already visible":
        return 0
    m = _SCROLL_COUNT_RE.search(message)
    return int(m.group(1)) if m else 0


def derive_hints(
    step: SkillStep,
    result: StepResult,
    last_result: Optional[DescribeResult],
    elapsed_ms: int,
) -> Optional[StepHints]:
    """根据一步的执行结果生成回放提示；None 表示该步无法编译。"""
    if isinstance(step, Tap):
        if last_result is not None:
            match = find_match(step.label, last_result.elements)
            if match is not None:
                return StepHints.tap(
                    x=match.element.tap_x,
                    y=match.element.tap_y,
                    confidence=match.element.confidence,
                    strategy=match.strategy.value,
                )
        return StepHints.sleep(elapsed_ms)

    if isinstance(step, (WaitFor, AssertVisible, AssertNotVisible, Measure)):
        return StepHints.sleep(elapsed_ms)

    if isinstance(step, ScrollTo):
        return StepHints.scroll_sequence(parse_scroll_count(result.message), step.direction)

    if isinstance(step, Skipped):
        return None

    # launch / type / press_key / swipe / home / open_url / shake / reset_app / set_network / screenshot / switch_target
    return StepHints.passthrough()


def compile_scenario(
    scenario: Scenario,
    executor: StepExecutor,
    recorder: RecordingDescriber,
    window: WindowInfo,
) -> CompiledScenario:
    """执行学习运行并生成 CompiledScenario。

    Args:
        scenario: 要编译的场景
        executor: 普通执行器，其 describer 必须是 recorder
        recorder: 记录最近一次感知结果的 describer
        window: 当前窗口尺寸，写入 device 信息

    Raises:
        CompileError: 某一步执行失败
    """
    try:
        source_hash = sha256_file(scenario.file_path)
    except OSError as e:
        _log.warning(f"无法计算源文件哈希: {scenario.file_path}: {e}")
        source_hash = ""

    total = len(scenario.steps)
    _log.info(f"编译: {scenario.name} ({total} 步)")

    steps: List[CompiledStep] = []
    for index, step in enumerate(scenario.steps):
        start = executor.clock()
        result = executor.execute(step, index, scenario.name)
        elapsed_ms = int((executor.clock() - start) * 1000)

        _log.info(f"  [{index + 1}/{total}] {step.display_name}  {result.status.value}")
        if result.status == StepStatus.FAILED:
            raise CompileError(scenario.name, index, result)

        steps.append(CompiledStep(
            index=index,
            step_type=step.type_key,
            label=step.label_value,
            hints=derive_hints(step, result, recorder.last_result, elapsed_ms),
        ))

    return CompiledScenario(
        version=COMPILED_FORMAT_VERSION,
        source=SourceInfo(sha256=source_hash, compiled_at=utc_timestamp()),
        device=DeviceInfo(window_width=window.width, window_height=window.height, orientation=window.orientation),
        steps=steps,
    )


def compile_and_save(
    scenario: Scenario,
    executor: StepExecutor,
    recorder: RecordingDescriber,
    window: WindowInfo,
) -> str:
    """编译并写入 .compiled.json，返回文件路径。"""
    compiled = compile_scenario(scenario, executor, recorder, window)
    path = save_compiled(compiled, scenario.file_path)
    hinted = sum(1 for s in compiled.steps if s.hints is not None)
    passthrough = sum(
        1 for s in compiled.steps
        if s.hints is not None and s.hints.compiled_action == CompiledAction.PASSTHROUGH
    )
    _log.info(f"  OK: {hinted} compiled, {passthrough} passthrough")
    return path


__all__ = [
    "CompileError",
    "parse_scroll_count",
    "derive_hints",
    "compile_scenario",
    "compile_and_save",
]
