"""
批量运行场景

流程：
1. 先解析全部场景文件，任何解析错误直接中止（返回 1）
2. 非 no_compiled 时读取 .compiled.json 并做过期检查，过期或无效时回退到完整感知
3. 逐个场景执行，失败后该场景剩余步骤记为 SKIP，其他场景不受影响
4. agent 不为 None 时对失败的编译步骤做确定性诊断；agent 为模型名时再请求远程分析
5. 输出汇总，可选写 JUnit XML，返回退出码（0 全部通过，1 有失败）
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import httpx

from ...core.constants import CompiledAction, StepStatus
from ...core.logger import logger
from ..report.console import ConsoleReporter, ScenarioResult
from ..report.junit import write_xml
from ..ui.types import ScreenDescriber
from .ai_agent import AgentClient, AgentDiagnosisError, AgentRegistry, format_ai_report
from .compiled import (
    CompiledScenario,
    CompiledScenarioError,
    CompiledStep,
    StepHints,
    check_staleness,
    load_compiled,
)
from .diagnostic import Recommendation, build_payload, diagnose, format_report
from .engine import SKIPPED_AFTER_FAILURE, StepExecutor, StepResult, run_steps
from .loader import ScenarioLoadError, discover_scenarios, load_scenario
from .replay import CompiledStepExecutor
from .steps import Scenario


@dataclass
class RunConfig:
    scenario_paths: List[str] = field(default_factory=list)
    junit_path: Optional[str] = None
    verbose: bool = False
    dry_run: bool = False
    no_compiled: bool = False
    # None 不诊断；"" 只做确定性诊断；其他值为远程分析的模型名
    agent: Optional[str] = None


class TestRunner:
    __test__ = False  # 避免被 pytest 当作测试类收集

    def __init__(
        self,
        executor: StepExecutor,
        *,
        compiled_executor_factory: Optional[Callable[[StepExecutor], CompiledStepExecutor]] = None,
        describer: Optional[ScreenDescriber] = None,
        reporter: Optional[ConsoleReporter] = None,
        agent_registry: Optional[AgentRegistry] = None,
        agent_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.executor = executor
        self._compiled_factory = compiled_executor_factory or CompiledStepExecutor
        self._describer = describer
        self.reporter = reporter or ConsoleReporter()
        self._agent_registry = agent_registry
        self._agent_transport = agent_transport
        self._log = logger.bind(module="TestRunner")

    @property
    def describer(self) -> ScreenDescriber:
        return self._describer if self._describer is not None else self.executor.describer

    # ── 入口 ──

    def run(self, config: RunConfig) -> int:
        self.reporter.verbose = config.verbose

        try:
            files = discover_scenarios(config.scenario_paths)
        except ScenarioLoadError as e:
            self.reporter.write(f"Error: {e}")
            return 1

        if not files:
            self.reporter.write("No scenarios found.")
            return 1

        self.reporter.write(f"screenpilot: {len(files)} scenario(s) to run")

        scenarios: List[Scenario] = []
        for path in files:
            try:
                scenarios.append(load_scenario(path))
            except ScenarioLoadError as e:
                self.reporter.write(f"Error parsing {path}: {e}")
                return 1

        if not config.dry_run and self.executor.bridge.get_window_info() is None:
            self.reporter.write(f"Error: target window is not available ({self.executor.bridge.target_name})")
            return 1

        compiled_map = {} if config.no_compiled else self.load_compiled_map(scenarios)

        results: List[ScenarioResult] = []
        compiled_steps = 0
        normal_steps = 0
        for scenario in scenarios:
            compiled = compiled_map.get(scenario.file_path)
            if compiled is not None:
                results.append(self.run_compiled(scenario, compiled, config.agent))
                for i in range(len(scenario.steps)):
                    hints = compiled.steps[i].hints if i < len(compiled.steps) else None
                    if hints is not None and hints.compiled_action != CompiledAction.PASSTHROUGH:
                        compiled_steps += 1
                    else:
                        normal_steps += 1
            else:
                results.append(self.run_scenario(scenario))
                normal_steps += len(scenario.steps)

        if compiled_steps > 0:
            self.reporter.write(f"\nCompiled: {compiled_steps} step(s) OCR-free, {normal_steps} normal")

        self.reporter.summary(results)

        if config.junit_path:
            try:
                write_xml(results, config.junit_path)
                self.reporter.write(f"\nJUnit XML written to: {config.junit_path}")
            except OSError as e:
                self._log.warning(f"JUnit XML 写入失败: {config.junit_path}: {e}")

        return 1 if any(r.has_failure for r in results) else 0

    def load_compiled_map(self, scenarios: List[Scenario]) -> Dict[str, CompiledScenario]:
        """读取并校验各场景的编译文件，只保留未过期的。"""
        window = self.executor.bridge.get_window_info()
        width = window.width if window is not None else 0.0
        height = window.height if window is not None else 0.0

        compiled_map: Dict[str, CompiledScenario] = {}
        for scenario in scenarios:
            try:
                compiled = load_compiled(scenario.file_path)
            except CompiledScenarioError as e:
                self._log.warning(f"编译文件无效，使用完整感知: {scenario.name}: {e}")
                continue
            if compiled is None:
                continue

            staleness = check_staleness(compiled, scenario.file_path, width, height)
            if staleness.fresh:
                compiled_map[scenario.file_path] = compiled
            else:
                self._log.warning(f"编译文件已过期 {scenario.name}: {staleness.reason}")
        return compiled_map

    # ── 单个场景 ──

    def _finish(self, scenario: Scenario, step_results: List[StepResult], start: float) -> ScenarioResult:
        result = ScenarioResult(
            name=scenario.name,
            file_path=scenario.file_path,
            step_results=step_results,
            duration_seconds=self.executor.clock() - start,
        )
        self.reporter.scenario_end(result)
        return result

    def run_scenario(self, scenario: Scenario) -> ScenarioResult:
        total = len(scenario.steps)
        self.reporter.scenario_start(scenario.name, scenario.file_path, total)

        start = self.executor.clock()
        step_results = run_steps(
            self.executor, scenario.steps, scenario.name,
            on_result=lambda index, result: self.reporter.step(index, total, result),
        )
        return self._finish(scenario, step_results, start)

    def run_compiled(self, scenario: Scenario, compiled: CompiledScenario, agent: Optional[str]) -> ScenarioResult:
        """按编译提示回放；超出编译步骤列表的部分交给普通执行器。"""
        agent_enabled = agent is not None
        if agent:
            tag = f" [compiled+agent:{agent}]"
        elif agent_enabled:
            tag = " [compiled+agent]"
        else:
            tag = " [compiled]"

        total = len(scenario.steps)
        self.reporter.scenario_start(scenario.name + tag, scenario.file_path, total)

        replay = self._compiled_factory(self.executor)
        start = self.executor.clock()
        step_results: List[StepResult] = []
        recommendations: List[Recommendation] = []
        failed = False

        for index, step in enumerate(scenario.steps):
            if failed:
                result = StepResult(step, StepStatus.SKIPPED, SKIPPED_AFTER_FAILURE, 0.0)
                step_results.append(result)
                self.reporter.step(index, total, result)
                continue

            if index < len(compiled.steps):
                compiled_step = compiled.steps[index]
                result = replay.execute(step, compiled_step, index, scenario.name)
            else:
                compiled_step = CompiledStep(
                    index=index,
                    step_type=step.type_key,
                    label=step.label_value,
                    hints=StepHints.passthrough(),
                )
                result = self.executor.execute(step, index, scenario.name)

            if result.status == StepStatus.FAILED:
                failed = True
                if agent_enabled:
                    rec = diagnose(compiled_step, result.message, self.describer)
                    if rec is not None:
                        recommendations.append(rec)

            step_results.append(result)
            self.reporter.step(index, total, result)

        if recommendations:
            self.reporter.write(format_report(recommendations, scenario.name).rstrip("\n"))
            if agent:
                self.run_ai_diagnosis(agent, recommendations, scenario)

        return self._finish(scenario, step_results, start)

    def run_ai_diagnosis(self, agent: str, recommendations: List[Recommendation], scenario: Scenario) -> None:
        """远程分析，任何失败只记录警告。"""
        registry = self._agent_registry or AgentRegistry()
        config = registry.resolve(agent)
        if config is None:
            available = ", ".join(registry.available())
            self._log.warning(f"未知的 AI agent '{agent}'。可用: {available}")
            return

        payload = build_payload(recommendations, scenario.name, scenario.file_path)
        try:
            diagnosis = AgentClient(config, transport=self._agent_transport).diagnose(payload)
        except AgentDiagnosisError as e:
            self._log.warning(f"AI 诊断失败 ({agent}): {e}")
            return
        self.reporter.write(format_ai_report(diagnosis, scenario.name).rstrip("\n"))


def run_batch(executor: StepExecutor, config: RunConfig, **kwargs) -> int:
    """用给定执行器跑一批场景，返回退出码。"""
    return TestRunner(executor, **kwargs).run(config)


__all__ = ["RunConfig", "TestRunner", "run_batch", "SKIPPED_AFTER_FAILURE"]
