"""
终端报告

逐步输出执行结果、每个场景的小结和整批的汇总。
输出写到 stderr（可替换为任意文本流），与 loguru 日志分开。
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence, TextIO

from ...core.constants import StepStatus

if TYPE_CHECKING:
    from ..executor.engine import StepResult


@dataclass(frozen=True)
class ScenarioResult:
    name: str
    file_path: str
    step_results: List[StepResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    def count(self, status: StepStatus) -> int:
        return sum(1 for r in self.step_results if r.status == status)

    @property
    def passed(self) -> int:
        return self.count(StepStatus.PASSED)

    @property
    def failed(self) -> int:
        return self.count(StepStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(StepStatus.SKIPPED)

    @property
    def has_failure(self) -> bool:
        return self.failed > 0


def format_step(index: int, total: int, result: StepResult, verbose: bool = False) -> str:
    line = f"  [{index + 1}/{total}] {result.step.display_name}  {result.status.value} ({result.duration_seconds:.1f}s)"
    if verbose and result.message:
        line += f" — {result.message}"
    return line


def format_scenario_end(result: ScenarioResult) -> str:
    status = StepStatus.FAILED.value if result.has_failure else StepStatus.PASSED.value
    return (
        f"  Result: {status} ({result.duration_seconds:.1f}s) — "
        f"{result.passed} passed, {result.failed} failed, {result.skipped} skipped"
    )


def format_summary(results: Sequence[ScenarioResult]) -> List[str]:
    all_steps = [r for res in results for r in res.step_results]
    failed_scenarios = [res for res in results if res.has_failure]
    passed_count = len(results) - len(failed_scenarios)

    def _n(status: StepStatus) -> int:
        return sum(1 for r in all_steps if r.status == status)

    lines = [
        "",
        f"Summary: {len(results)} skill(s), {len(all_steps)} step(s)",
        f"  Skills — PASSED: {passed_count}, FAILED: {len(failed_scenarios)}",
        f"  Steps — PASSED: {_n(StepStatus.PASSED)}, FAILED: {_n(StepStatus.FAILED)}, "
        f"SKIPPED: {_n(StepStatus.SKIPPED)}",
    ]
    if failed_scenarios:
        lines.append("")
        lines.append("Failed skills:")
        for res in failed_scenarios:
            lines.append(f"  - {res.name}")
            for r in res.step_results:
                if r.status == StepStatus.FAILED:
                    lines.append(f"    {r.step.display_name}: {r.message or 'unknown error'}")
    return lines


class ConsoleReporter:
    def __init__(self, stream: Optional[TextIO] = None, verbose: bool = False) -> None:
        self._stream = stream
        self.verbose = verbose

    @property
    def stream(self) -> TextIO:
        # 延迟取 sys.stderr，便于 pytest 的 capsys 替换
        return self._stream if self._stream is not None else sys.stderr

    def write(self, text: str = "") -> None:
        self.stream.write(text + "\n")

    def step(self, index: int, total: int, result: StepResult) -> None:
        self.write(format_step(index, total, result, self.verbose))

    def scenario_start(self, name: str, file_path: str, step_count: int) -> None:
        self.write(f"\nSkill: {name} ({step_count} steps)")
        self.write(f"  File: {file_path}")

    def scenario_end(self, result: ScenarioResult) -> None:
        self.write(format_scenario_end(result))

    def summary(self, results: Sequence[ScenarioResult]) -> None:
        for line in format_summary(results):
            self.write(line)


__all__ = [
    "ScenarioResult",
    "ConsoleReporter",
    "format_step",
    "format_scenario_end",
    "format_summary",
]
