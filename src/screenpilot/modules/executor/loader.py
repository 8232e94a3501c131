"""
YAML 场景加载器

文件格式：
    name: Check About
    description: 打开设置查看关于本机
    app: Settings
    steps:
      - launch: "Settings"
      - tap: "General"
      - wait_for: {label: "About", timeout: 10}
      - press_key: "l+command"
      - scroll_to: {label: "Privacy", direction: up, max_scrolls: 5}
      - measure: {name: open_time, action: {tap: "About"}, until: "Model Name", max_seconds: 3}
      - home

每个步骤是裸字符串（home / shake）或单键映射。值中的 ${VAR} 用环境变量替换。
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml

from ...core.config import settings
from ...core.logger import logger
from .steps import (
    AssertNotVisible,
    AssertVisible,
    Home,
    Launch,
    Measure,
    OpenUrl,
    PressKey,
    ResetApp,
    Scenario,
    Screenshot,
    ScrollTo,
    SetNetwork,
    Shake,
    SkillStep,
    Skipped,
    Swipe,
    SwitchTarget,
    Tap,
    TypeText,
    WaitFor,
)

_log = logger.bind(module="ScenarioLoader")

_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# 需要人工理解、无法确定性执行的步骤
AI_ONLY_STEPS = ("remember", "condition", "repeat", "verify", "summarize")

UNSUPPORTED_REASON = "unsupported step type"
AI_ONLY_REASON = "AI-only step, requires human interpretation"

SCENARIO_SUFFIXES = (".yaml", ".yml")


class ScenarioLoadError(ValueError):
    """场景文件无法读取或结构不合法。"""


def substitute_env_vars(content: str) -> str:
    """替换 ${VAR}；未定义的变量保持原样。"""
    return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), content)


def _text(key: str, value: Any) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    raise ScenarioLoadError(f"'{key}' 的值必须是字符串，实际为 {type(value).__name__}")


def _labelled(key: str, value: Any) -> Dict[str, Any]:
    """字符串值 → {'label': value}；映射值原样返回（必须含 label）。"""
    if isinstance(value, dict):
        if "label" not in value:
            raise ScenarioLoadError(f"'{key}' 缺少 label 字段")
        return value
    return {"label": _text(key, value)}


def _parse_press_key(value: Any) -> SkillStep:
    if isinstance(value, dict):
        if "key" not in value:
            raise ScenarioLoadError("'press_key' 缺少 key 字段")
        mods = value.get("modifiers") or []
        if not isinstance(mods, list):
            raise ScenarioLoadError("press_key.modifiers 必须是列表")
        return PressKey(key=_text("press_key", value["key"]), modifiers=tuple(str(m) for m in mods))
    text = _text("press_key", value)
    # 行内修饰键: "l+command"
    if "+" in text:
        parts = [p.strip() for p in text.split("+")]
        return PressKey(key=parts[0], modifiers=tuple(p for p in parts[1:] if p))
    return PressKey(key=text)


def _parse_wait_for(value: Any) -> SkillStep:
    v = _labelled("wait_for", value)
    timeout = v.get("timeout")
    return WaitFor(label=_text("wait_for", v["label"]), timeout_seconds=int(timeout) if timeout is not None else None)


def _parse_scroll_to(value: Any) -> SkillStep:
    v = _labelled("scroll_to", value)
    max_scrolls = v.get("max_scrolls")
    return ScrollTo(
        label=_text("scroll_to", v["label"]),
        direction=str(v.get("direction", "up")),
        max_scrolls=int(max_scrolls) if max_scrolls is not None else settings.scroll_max_attempts,
    )


_MEASURE_KEYS = ("name", "until", "max", "max_seconds", "action")


def _parse_measure(value: Any) -> SkillStep:
    if not isinstance(value, dict):
        raise ScenarioLoadError("'measure' 的值必须是映射")

    action: Optional[SkillStep] = None
    if "action" in value:
        action = parse_step(value["action"])
    else:
        # 简写形式: {tap: "Login", until: "Dashboard", name: login_time}
        inline = {k: v for k, v in value.items() if k not in _MEASURE_KEYS}
        if inline:
            k, v = next(iter(inline.items()))
            action = parse_step({k: v})
    if action is None:
        action = Skipped(step_type="measure", reason="No action found in measure step")

    max_seconds = value.get("max_seconds", value.get("max"))
    return Measure(
        name=str(value.get("name", "measure")),
        action=action,
        until=str(value.get("until", "")),
        max_seconds=float(max_seconds) if max_seconds is not None else None,
    )


_PARSERS: Dict[str, Callable[[Any], SkillStep]] = {
    "launch": lambda v: Launch(app_name=_text("launch", v)),
    "tap": lambda v: Tap(label=_text("tap", v)),
    "type": lambda v: TypeText(text=_text("type", v)),
    "press_key": _parse_press_key,
    "swipe": lambda v: Swipe(direction=_text("swipe", v)),
    "wait_for": _parse_wait_for,
    "assert_visible": lambda v: AssertVisible(label=_text("assert_visible", v)),
    "assert_not_visible": lambda v: AssertNotVisible(label=_text("assert_not_visible", v)),
    "screenshot": lambda v: Screenshot(label=_text("screenshot", v)),
    "home": lambda v: Home(),
    "press_home": lambda v: Home(),
    "open_url": lambda v: OpenUrl(url=_text("open_url", v)),
    "shake": lambda v: Shake(),
    "scroll_to": _parse_scroll_to,
    "reset_app": lambda v: ResetApp(app_name=_text("reset_app", v)),
    "set_network": lambda v: SetNetwork(mode=_text("set_network", v)),
    "measure": _parse_measure,
    "switch_target": lambda v: SwitchTarget(name=_text("switch_target", v)),
    "target": lambda v: SwitchTarget(name=_text("target", v)),
}

_BARE_STEPS = ("home", "press_home", "shake")


def parse_step(raw: Any) -> SkillStep:
    """解析单个步骤（裸字符串或单键映射）。"""
    if isinstance(raw, str):
        key = raw.strip()
        if key in _BARE_STEPS:
            return _PARSERS[key](None)
        if key in AI_ONLY_STEPS:
            return Skipped(step_type=key, reason=AI_ONLY_REASON)
        return Skipped(step_type=key, reason=UNSUPPORTED_REASON)

    if not isinstance(raw, dict) or len(raw) != 1:
        raise ScenarioLoadError(f"步骤必须是字符串或单键映射: {raw!r}")

    key, value = next(iter(raw.items()))
    key = str(key)
    parser = _PARSERS.get(key)
    if parser is not None:
        return parser(value)
    if key in AI_ONLY_STEPS:
        return Skipped(step_type=key, reason=AI_ONLY_REASON)
    return Skipped(step_type=key, reason=UNSUPPORTED_REASON)


def parse_scenario(content: str, file_path: str = "<inline>") -> Scenario:
    """解析 YAML 文本为 Scenario。

    Raises:
        ScenarioLoadError: YAML 语法错误或结构不合法
    """
    try:
        data = yaml.safe_load(substitute_env_vars(content))
    except yaml.YAMLError as e:
        raise ScenarioLoadError(f"YAML 解析失败: {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ScenarioLoadError(f"场景格式错误（非 dict）: {file_path}")

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        raise ScenarioLoadError(f"steps 必须是列表: {file_path}")

    steps: List[SkillStep] = []
    for i, raw in enumerate(raw_steps):
        try:
            steps.append(parse_step(raw))
        except ScenarioLoadError as e:
            raise ScenarioLoadError(f"{file_path} 第 {i + 1} 步: {e}") from e

    name = data.get("name") or Path(file_path).stem
    app = data.get("app")
    return Scenario(
        name=str(name),
        file_path=file_path,
        steps=steps,
        description=str(data.get("description") or ""),
        app=str(app) if app is not None else None,
    )


def load_scenario(path: str) -> Scenario:
    """从文件加载场景。"""
    file_path = Path(path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScenarioLoadError(f"无法读取场景文件: {path}: {e}") from e

    scenario = parse_scenario(content, file_path=str(file_path))
    skipped = sum(1 for s in scenario.steps if isinstance(s, Skipped))
    _log.debug(f"场景已加载: {scenario.name} ({len(scenario.steps)} 步, {skipped} 步跳过)")
    return scenario


def discover_scenarios(paths: Iterable[str]) -> List[str]:
    """展开路径：目录 → 其中的 *.yaml / *.yml（排序），文件原样保留。

    Raises:
        ScenarioLoadError: 路径不存在
    """
    files: List[str] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            files.extend(sorted(
                str(f) for f in path.iterdir()
                if f.is_file() and f.suffix in SCENARIO_SUFFIXES
            ))
        elif path.is_file():
            files.append(str(path))
        else:
            raise ScenarioLoadError(f"场景路径不存在: {p}")
    return files


__all__ = [
    "ScenarioLoadError",
    "substitute_env_vars",
    "parse_step",
    "parse_scenario",
    "load_scenario",
    "discover_scenarios",
]
