"""
回放失败诊断

编译步骤失败后，对当前屏幕做一次感知，把缓存的提示和实际画面对比，
给出诊断文字和可直接应用到 .compiled.json 的字段修正（patch）。
每次失败只多花一次感知；成功的步骤不产生任何开销。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ...core.constants import CompiledAction
from ..ocr.types import TapPoint
from ..ui.matcher import find_match, is_visible
from ..ui.types import DescribeResult, ScreenDescriber
from .compiled import CompiledStep, StepHints

# 点击位置偏差小于该值视为 "没有移动"
TAP_TOLERANCE = 5.0
SLEEP_PATCH_INCREMENT_MS = 1000
SCROLL_PATCH_INCREMENT = 2


@dataclass(frozen=True)
class Patch:
    field: str
    was: str
    should_be: str


@dataclass(frozen=True)
class Recommendation:
    step_index: int
    step_type: str
    label: Optional[str]
    diagnosis: str
    patches: List[Patch] = field(default_factory=list)


def _fmt(value: float) -> str:
    return f"{value:.1f}"


def _quoted(elements: Sequence[TapPoint], limit: int) -> str:
    return ", ".join(f'"{e.text}"' for e in elements[:limit])


def _rec(step: CompiledStep, diagnosis: str, patches: Optional[List[Patch]] = None, label: Optional[str] = None) -> Recommendation:
    return Recommendation(
        step_index=step.index,
        step_type=step.step_type,
        label=step.label if label is None else label,
        diagnosis=diagnosis,
        patches=patches or [],
    )


def _diagnose_tap(step: CompiledStep, hints: StepHints, screen: DescribeResult) -> Recommendation:
    label = step.label or ""
    cx = hints.tap_x or 0.0
    cy = hints.tap_y or 0.0

    match = find_match(label, screen.elements)
    if match is not None:
        ax, ay = match.element.tap_x, match.element.tap_y
        if abs(ax - cx) < TAP_TOLERANCE and abs(ay - cy) < TAP_TOLERANCE:
            return _rec(
                step,
                f'Element "{label}" is at the compiled position — tap may have been absorbed by the UI',
                label=label,
            )
        return _rec(
            step,
            f'Element "{label}" moved: compiled ({_fmt(cx)}, {_fmt(cy)}) vs actual ({_fmt(ax)}, {_fmt(ay)})',
            [
                Patch("tapX", _fmt(cx), _fmt(ax)),
                Patch("tapY", _fmt(cy), _fmt(ay)),
            ],
            label=label,
        )

    visible = ", ".join(
        [f'"{e.text}" ({_fmt(e.tap_x)}, {_fmt(e.tap_y)})' for e in screen.elements[:10]] + screen.hints
    )
    return _rec(step, f'Element "{label}" not found on screen. Visible: {visible}', label=label)


def _diagnose_sleep(
    step: CompiledStep, hints: StepHints, screen: DescribeResult, failure_message: Optional[str]
) -> Recommendation:
    label = step.label or ""

    if step.step_type in ("assert_visible", "wait_for"):
        if is_visible(label, screen.elements):
            delay = hints.observed_delay_ms or 0
            return _rec(
                step,
                f'Element "{label}" IS visible — compiled sleep ({delay}ms) may be too short. Increase observedDelayMs.',
                [Patch("observedDelayMs", str(delay), str(delay + SLEEP_PATCH_INCREMENT_MS))],
                label=label,
            )
        return _rec(
            step,
            f'Element "{label}" not visible after compiled sleep. Screen shows: {_quoted(screen.elements, 10)}. '
            f"Previous step may have navigated to wrong screen.",
            label=label,
        )

    if step.step_type == "assert_not_visible":
        if not is_visible(label, screen.elements):
            return _rec(step, f'Element "{label}" is correctly not visible. Step should have passed.', label=label)
        return _rec(
            step,
            f'Element "{label}" is unexpectedly visible. Previous step may not have navigated away.',
            label=label,
        )

    return _rec(step, failure_message or "Sleep step failed", label=label)


def _diagnose_scroll(step: CompiledStep, hints: StepHints, screen: DescribeResult) -> Recommendation:
    label = step.label or ""
    count = hints.scroll_count or 0

    if is_visible(label, screen.elements):
        return _rec(
            step,
            f'Element "{label}" IS visible after {count} scroll(s) — scroll count may need adjustment',
            label=label,
        )
    return _rec(
        step,
        f'Element "{label}" not found after {count} compiled scroll(s). '
        f"Visible: {_quoted(screen.elements, 8)}. May need more scrolls.",
        [Patch("scrollCount", str(count), str(count + SCROLL_PATCH_INCREMENT))],
        label=label,
    )


def diagnose(
    compiled_step: CompiledStep,
    failure_message: Optional[str],
    describer: ScreenDescriber,
) -> Optional[Recommendation]:
    """诊断一个失败的编译步骤。没有 hints 的步骤返回 None。"""
    hints = compiled_step.hints
    if hints is None:
        return None

    screen = describer.describe()
    if screen is None:
        return _rec(compiled_step, "Cannot OCR screen for diagnosis (capture failed)")

    action = hints.compiled_action
    if action == CompiledAction.TAP:
        return _diagnose_tap(compiled_step, hints, screen)
    if action == CompiledAction.SLEEP:
        return _diagnose_sleep(compiled_step, hints, screen, failure_message)
    if action == CompiledAction.SCROLL_SEQUENCE:
        return _diagnose_scroll(compiled_step, hints, screen)
    return _rec(
        compiled_step,
        f"Passthrough step failed: {failure_message or 'unknown'}. Screen shows: {_quoted(screen.elements, 8)}",
    )


def format_report(recommendations: Sequence[Recommendation], scenario_name: str) -> str:
    """诊断报告文本；没有诊断时返回空字符串。"""
    if not recommendations:
        return ""

    lines = ["", f"--- Agent Diagnostic: {scenario_name} ---"]
    for rec in recommendations:
        label = f' "{rec.label}"' if rec.label is not None else ""
        lines.append("")
        lines.append(f"Step {rec.step_index + 1} [{rec.step_type}{label}]:")
        lines.append(f"  Diagnosis: {rec.diagnosis}")
        for p in rec.patches:
            lines.append(f"  Fix: {p.field}: {p.was} -> {p.should_be}")

    if any(rec.patches for rec in recommendations):
        lines.append("")
        lines.append("Recommendation: recompile the scenario or apply patches manually.")
    lines.append("---")
    return "\n".join(lines) + "\n"


# ── 远程分析载荷 ──

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PatchInfo(_CamelModel):
    field: str
    was: str
    should_be: str = Field(alias="shouldBe")


class FailedStep(_CamelModel):
    step_index: int = Field(alias="stepIndex")
    step_type: str = Field(alias="stepType")
    label: Optional[str] = None
    deterministic_diagnosis: str = Field(alias="deterministicDiagnosis")
    patches: List[PatchInfo] = Field(default_factory=list)


class DiagnosticPayload(_CamelModel):
    skill_name: str = Field(alias="skillName")
    skill_file_path: str = Field(alias="skillFilePath")
    failed_steps: List[FailedStep] = Field(alias="failedSteps")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def build_payload(
    recommendations: Sequence[Recommendation],
    scenario_name: str,
    scenario_file_path: str,
) -> DiagnosticPayload:
    return DiagnosticPayload(
        skill_name=scenario_name,
        skill_file_path=scenario_file_path,
        failed_steps=[
            FailedStep(
                step_index=rec.step_index,
                step_type=rec.step_type,
                label=rec.label,
                deterministic_diagnosis=rec.diagnosis,
                patches=[PatchInfo(field=p.field, was=p.was, should_be=p.should_be) for p in rec.patches],
            )
            for rec in recommendations
        ],
    )


__all__ = [
    "TAP_TOLERANCE",
    "Patch",
    "Recommendation",
    "diagnose",
    "format_report",
    "PatchInfo",
    "FailedStep",
    "DiagnosticPayload",
    "build_payload",
]
