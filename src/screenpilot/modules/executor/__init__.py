"""
场景执行模块
"""
from .steps import Scenario, SkillStep
from .loader import ScenarioLoadError, discover_scenarios, load_scenario, parse_scenario
from .engine import StepExecutor, StepExecutorConfig, StepResult, run_steps
from .compiled import (
    CompiledScenario,
    CompiledScenarioError,
    CompiledStep,
    StepHints,
    Staleness,
    check_staleness,
    load_compiled,
    save_compiled,
)
from .replay import CompiledStepExecutor
from .compiler import CompileError, compile_and_save, compile_scenario
from .diagnostic import Recommendation, diagnose, format_report, build_payload
from .ai_agent import AgentClient, AgentDiagnosisError, AgentRegistry
from .runner import RunConfig, TestRunner, run_batch

__all__ = [
    "Scenario",
    "SkillStep",
    "ScenarioLoadError",
    "discover_scenarios",
    "load_scenario",
    "parse_scenario",
    "StepExecutor",
    "StepExecutorConfig",
    "StepResult",
    "run_steps",
    "CompiledScenario",
    "CompiledScenarioError",
    "CompiledStep",
    "StepHints",
    "Staleness",
    "check_staleness",
    "load_compiled",
    "save_compiled",
    "CompiledStepExecutor",
    "CompileError",
    "compile_and_save",
    "compile_scenario",
    "Recommendation",
    "diagnose",
    "format_report",
    "build_payload",
    "AgentClient",
    "AgentDiagnosisError",
    "AgentRegistry",
    "RunConfig",
    "TestRunner",
    "run_batch",
]
