"""JUnit XML 报告：每个场景一个 testsuite，每个步骤一个 testcase。"""
from __future__ import annotations

import os
from typing import TYPE_CHECKING, List, Sequence
from xml.sax.saxutils import escape

from ...core.constants import StepStatus
from ...core.logger import logger
from .console import ScenarioResult

if TYPE_CHECKING:
    from ..executor.engine import StepResult

_log = logger.bind(module="JUnitReporter")

_ATTR_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def xml_escape(text: str) -> str:
    """转义 & < > " '"""
    return escape(text, _ATTR_ENTITIES)


def _testcase(result: StepResult, suite_name: str) -> List[str]:
    head = (
        f'    <testcase name="{xml_escape(result.step.display_name)}" '
        f'classname="{xml_escape(suite_name)}" time="{result.duration_seconds:.3f}"'
    )
    if result.status == StepStatus.FAILED:
        message = xml_escape(result.message or "Step failed")
        return [
            head + ">",
            f'      <failure message="{message}">{message}</failure>',
            "    </testcase>",
        ]
    if result.status == StepStatus.SKIPPED:
        message = xml_escape(result.message or "Step skipped")
        return [
            head + ">",
            f'      <skipped message="{message}" />',
            "    </testcase>",
        ]
    return [head + " />"]


def generate_xml(results: Sequence[ScenarioResult]) -> str:
    tests = sum(len(r.step_results) for r in results)
    failures = sum(r.failed for r in results)
    skipped = sum(r.skipped for r in results)
    total_time = sum(r.duration_seconds for r in results)

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<testsuites tests="{tests}" failures="{failures}" skipped="{skipped}" time="{total_time:.3f}">',
    ]
    for res in results:
        lines.append(
            f'  <testsuite name="{xml_escape(res.name)}" tests="{len(res.step_results)}" '
            f'failures="{res.failed}" skipped="{res.skipped}" time="{res.duration_seconds:.3f}">'
        )
        for step_result in res.step_results:
            lines.extend(_testcase(step_result, res.name))
        lines.append("  </testsuite>")
    lines.append("</testsuites>")
    return "\n".join(lines) + "\n"


def write_xml(results: Sequence[ScenarioResult], path: str) -> None:
    """写入 JUnit XML，必要时创建目录。

    Raises:
        OSError: 目录或文件无法写入
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(generate_xml(results))
    _log.info(f"JUnit XML 已写入: {path}")


__all__ = ["xml_escape", "generate_xml", "write_xml"]
