"""
编译场景：数据模型、文件读写、过期检查

学习运行记录每一步的具体决策（点击坐标、等待时长、滚动次数），
保存为场景文件旁的 <name>.compiled.json，回放时跳过 OCR。
JSON 字段使用 camelCase，键排序，缩进 2。
"""
from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...core.constants import COMPILED_FORMAT_VERSION, COMPILED_SUFFIX, CompiledAction
from ...core.logger import logger

_log = logger.bind(module="CompiledScenario")


class CompiledScenarioError(RuntimeError):
    """编译文件无法读取或格式不合法。"""


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SourceInfo(_CamelModel):
    sha256: str
    compiled_at: str = Field(alias="compiledAt")


class DeviceInfo(_CamelModel):
    window_width: float = Field(alias="windowWidth")
    window_height: float = Field(alias="windowHeight")
    orientation: str = "portrait"


class StepHints(_CamelModel):
    compiled_action: CompiledAction = Field(alias="compiledAction")

    # tap
    tap_x: Optional[float] = Field(default=None, alias="tapX")
    tap_y: Optional[float] = Field(default=None, alias="tapY")
    confidence: Optional[float] = None
    match_strategy: Optional[str] = Field(default=None, alias="matchStrategy")

    # sleep
    observed_delay_ms: Optional[int] = Field(default=None, alias="observedDelayMs")

    # scroll
    scroll_count: Optional[int] = Field(default=None, alias="scrollCount")
    scroll_direction: Optional[str] = Field(default=None, alias="scrollDirection")

    @classmethod
    def tap(cls, x: float, y: float, confidence: float, strategy: str) -> "StepHints":
        return cls(
            compiled_action=CompiledAction.TAP,
            tap_x=x,
            tap_y=y,
            confidence=confidence,
            match_strategy=strategy,
        )

    @classmethod
    def sleep(cls, delay_ms: int) -> "StepHints":
        return cls(compiled_action=CompiledAction.SLEEP, observed_delay_ms=delay_ms)

    @classmethod
    def scroll_sequence(cls, count: int, direction: str) -> "StepHints":
        return cls(
            compiled_action=CompiledAction.SCROLL_SEQUENCE,
            scroll_count=count,
            scroll_direction=direction,
        )

    @classmethod
    def passthrough(cls) -> "StepHints":
        return cls(compiled_action=CompiledAction.PASSTHROUGH)


class CompiledStep(_CamelModel):
    index: int
    step_type: str = Field(alias="type")
    label: Optional[str] = None
    # None 表示无法编译的步骤（回放时跳过）
    hints: Optional[StepHints] = None


class CompiledScenario(_CamelModel):
    version: int
    source: SourceInfo
    device: DeviceInfo
    steps: List[CompiledStep] = Field(default_factory=list)

    def to_json(self) -> str:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)


@dataclass(frozen=True)
class Staleness:
    fresh: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "Staleness":
        return cls(fresh=True)

    @classmethod
    def stale(cls, reason: str) -> "Staleness":
        return cls(fresh=False, reason=reason)


def compiled_path(scenario_path: str) -> str:
    """apps/settings/check-about.yaml → apps/settings/check-about.compiled.json"""
    base, _ = os.path.splitext(scenario_path)
    return base + COMPILED_SUFFIX


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: str) -> str:
    with open(path, "rb") as f:
        return sha256_bytes(f.read())


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def load_compiled(scenario_path: str) -> Optional[CompiledScenario]:
    """读取场景对应的编译文件，不存在时返回 None。

    Raises:
        CompiledScenarioError: 文件存在但无法读取或解析
    """
    path = compiled_path(scenario_path)
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return CompiledScenario.model_validate_json(f.read())
    except (OSError, ValidationError) as e:
        raise CompiledScenarioError(f"编译文件无效: {path}: {e}") from e


def save_compiled(compiled: CompiledScenario, scenario_path: str) -> str:
    """写入编译文件（先写临时文件再替换），返回写入路径。"""
    path = compiled_path(scenario_path)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(compiled.to_json())
        f.write("\n")
    os.replace(tmp, path)
    _log.info(f"编译文件已保存: {path}")
    return path


def check_staleness(
    compiled: CompiledScenario,
    scenario_path: str,
    window_width: float,
    window_height: float,
) -> Staleness:
    """依次检查格式版本、源文件哈希、窗口尺寸。源文件不可读时跳过哈希检查。"""
    if compiled.version != COMPILED_FORMAT_VERSION:
        return Staleness.stale(f"compiled version {compiled.version} != current {COMPILED_FORMAT_VERSION}")

    try:
        current_hash: Optional[str] = sha256_file(scenario_path)
    except OSError:
        current_hash = None
    if current_hash is not None and current_hash != compiled.source.sha256:
        return Staleness.stale("source file has changed since compilation")

    device = compiled.device
    if device.window_width != window_width or device.window_height != window_height:
        return Staleness.stale(
            f"window dimensions changed: compiled {int(device.window_width)}x{int(device.window_height)} "
            f"vs current {int(window_width)}x{int(window_height)}"
        )

    return Staleness.ok()


__all__ = [
    "CompiledScenarioError",
    "SourceInfo",
    "DeviceInfo",
    "StepHints",
    "CompiledStep",
    "CompiledScenario",
    "Staleness",
    "compiled_path",
    "sha256_bytes",
    "sha256_file",
    "utc_timestamp",
    "load_compiled",
    "save_compiled",
    "check_staleness",
]
