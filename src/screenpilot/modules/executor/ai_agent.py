"""
远程 AI 诊断

把确定性诊断的汇总（DiagnosticPayload）发给大模型，取回分析和修正建议。
该步骤是可选的：任何失败都抛出 AgentDiagnosisError，由调用方记录警告后继续。
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import yaml

from ...core.config import settings
from ...core.logger import logger
from .diagnostic import DiagnosticPayload

_log = logger.bind(module="AIAgent")

PROVIDERS = ("anthropic", "openai", "ollama")
OLLAMA_PREFIX = "ollama:"
OLLAMA_BASE_URL = "http://localhost:11434"
ANTHROPIC_API_VERSION = "2023-06-01"

DEFAULT_PROMPT = """You are an expert mobile UI automation debugger analyzing a failed test scenario.

Given the diagnostic context below, provide:
1. ROOT CAUSE: What specifically went wrong and why
2. FIX: Concrete actionable fix (coordinate changes, timing adjustments, or scenario edits)
3. CONFIDENCE: high, medium, or low

Respond in JSON: {"analysis": "...", "suggested_fixes": [{"field": "...", "was": "...", "should_be": "..."}], "confidence": "high|medium|low"}
"""


class AgentDiagnosisError(RuntimeError):
    """远程诊断不可用（配置、网络、鉴权、超时、响应格式）。"""


@dataclass(frozen=True)
class AgentConfig:
    name: str
    provider: str
    model: Optional[str] = None
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    system_prompt: Optional[str] = None
    max_tokens: int = 1024


@dataclass(frozen=True)
class SuggestedFix:
    field: str
    was: str
    should_be: str


@dataclass(frozen=True)
class AIDiagnosis:
    analysis: str
    confidence: str
    model_used: str
    suggested_fixes: List[SuggestedFix] = field(default_factory=list)


def _builtin_agents() -> Dict[str, AgentConfig]:
    max_tokens = settings.agent_max_tokens
    return {
        "claude-sonnet": AgentConfig(
            name="claude-sonnet", provider="anthropic", model="claude-sonnet-4-5",
            api_key_env="ANTHROPIC_API_KEY", base_url="https://api.anthropic.com", max_tokens=max_tokens,
        ),
        "claude-haiku": AgentConfig(
            name="claude-haiku", provider="anthropic", model="claude-haiku-4-5",
            api_key_env="ANTHROPIC_API_KEY", base_url="https://api.anthropic.com", max_tokens=max_tokens,
        ),
        "gpt-4o": AgentConfig(
            name="gpt-4o", provider="openai", model="gpt-4o",
            api_key_env="OPENAI_API_KEY", base_url="https://api.openai.com", max_tokens=max_tokens,
        ),
    }


class AgentRegistry:
    """名称 → AgentConfig。查找顺序：内置 → ollama:<model> → YAML 配置文件。"""

    def __init__(self, profile_dirs: Optional[List[str]] = None) -> None:
        self._profile_dirs = settings.agent_profile_dir_list if profile_dirs is None else profile_dirs
        self._builtins = _builtin_agents()

    def resolve(self, name: str) -> Optional[AgentConfig]:
        if name in self._builtins:
            return self._builtins[name]

        if name.startswith(OLLAMA_PREFIX):
            model = name[len(OLLAMA_PREFIX):]
            if not model:
                return None
            return AgentConfig(
                name=name, provider="ollama", model=model,
                base_url=OLLAMA_BASE_URL, max_tokens=settings.agent_max_tokens,
            )

        for d in self._profile_dirs:
            path = Path(d).expanduser() / f"{name}.yaml"
            if path.is_file():
                return self.load_profile(path)
        return None

    def available(self) -> List[str]:
        names = sorted(self._builtins)
        names.append(f"{OLLAMA_PREFIX}<model>")
        for d in self._profile_dirs:
            p = Path(d).expanduser()
            if not p.is_dir():
                continue
            for f in sorted(p.glob("*.yaml")):
                if f.stem not in names:
                    names.append(f.stem)
        return names

    @staticmethod
    def load_profile(path: Path) -> Optional[AgentConfig]:
        """读取 YAML 配置；格式不合法或不是 api 模式时返回 None。"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            _log.warning(f"AI 配置文件读取失败: {path}: {e}")
            return None

        if not isinstance(data, dict):
            _log.warning(f"AI 配置文件格式错误（非 dict）: {path}")
            return None

        mode = str(data.get("mode", "api"))
        provider = str(data.get("provider", ""))
        if mode != "api" or provider not in PROVIDERS:
            _log.warning(f"不支持的 AI 配置: mode={mode} provider={provider} ({path})")
            return None

        return AgentConfig(
            name=str(data.get("name") or path.stem),
            provider=provider,
            model=data.get("model"),
            api_key_env=data.get("api_key_env"),
            base_url=data.get("base_url"),
            system_prompt=data.get("system_prompt"),
            max_tokens=int(data.get("max_tokens") or settings.agent_max_tokens),
        )


def parse_diagnosis(text: str, model_used: str) -> AIDiagnosis:
    """从模型回复中取出最外层 JSON 对象；解析不了时整段文字作为分析，置信度 low。"""
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end < start:
        return AIDiagnosis(analysis=text, confidence="low", model_used=model_used)

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return AIDiagnosis(analysis=text, confidence="low", model_used=model_used)
    if not isinstance(data, dict):
        return AIDiagnosis(analysis=text, confidence="low", model_used=model_used)

    raw_fixes = data.get("suggested_fixes")
    fixes = []
    for fix in raw_fixes if isinstance(raw_fixes, list) else []:
        if isinstance(fix, dict):
            fixes.append(SuggestedFix(
                field=str(fix.get("field", "")),
                was=str(fix.get("was", "")),
                should_be=str(fix.get("should_be", "")),
            ))
    return AIDiagnosis(
        analysis=str(data.get("analysis") or "No analysis provided"),
        confidence=str(data.get("confidence") or "low"),
        model_used=model_used,
        suggested_fixes=fixes,
    )


class AgentClient:
    """按 provider 组装请求并解析回复。transport 可注入（测试用 httpx.MockTransport）。"""

    def __init__(self, config: AgentConfig, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.config = config
        self._transport = transport

    def _timeout(self) -> int:
        return {
            "anthropic": settings.anthropic_timeout_sec,
            "openai": settings.openai_timeout_sec,
            "ollama": settings.ollama_timeout_sec,
        }[self.config.provider]

    def _api_key(self) -> str:
        env = self.config.api_key_env
        if not env:
            raise AgentDiagnosisError(f"AI agent '{self.config.name}' has no API key env var configured")
        key = os.environ.get(env, "")
        if not key:
            raise AgentDiagnosisError(f"AI agent '{self.config.name}' requires {env} env var")
        return key

    def _post(self, url: str, headers: Dict[str, str], body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=self._timeout(), transport=self._transport) as client:
                response = client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise AgentDiagnosisError(f"AI agent timed out after {self._timeout()}s") from e
        except httpx.HTTPError as e:
            raise AgentDiagnosisError(f"AI agent request failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise AgentDiagnosisError(f"AI agent authentication failed (HTTP {status})")
        if status == 429:
            raise AgentDiagnosisError("AI agent rate limited (HTTP 429)")
        if status >= 400:
            raise AgentDiagnosisError(f"AI agent HTTP {status}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise AgentDiagnosisError(f"AI agent returned non-JSON body: {response.text[:200]}") from e
        if not isinstance(body, dict):
            raise AgentDiagnosisError(f"AI agent returned unexpected JSON: {response.text[:200]}")
        return body

    def diagnose(self, payload: DiagnosticPayload) -> AIDiagnosis:
        """发送诊断载荷。

        Raises:
            AgentDiagnosisError: 配置缺失、网络错误、鉴权失败、超时或响应无法解析
        """
        cfg = self.config
        prompt = cfg.system_prompt or DEFAULT_PROMPT
        content = payload.to_json()

        if cfg.provider == "anthropic":
            data = self._post(
                (cfg.base_url or "https://api.anthropic.com") + "/v1/messages",
                {"x-api-key": self._api_key(), "anthropic-version": ANTHROPIC_API_VERSION},
                {
                    "model": cfg.model,
                    "max_tokens": cfg.max_tokens,
                    "system": prompt,
                    "messages": [{"role": "user", "content": content}],
                },
            )
            blocks = data.get("content")
            first = blocks[0] if isinstance(blocks, list) and blocks else None
            text = first.get("text") if isinstance(first, dict) else None
        elif cfg.provider == "openai":
            data = self._post(
                (cfg.base_url or "https://api.openai.com") + "/v1/chat/completions",
                {"Authorization": f"Bearer {self._api_key()}"},
                {
                    "model": cfg.model,
                    "max_tokens": cfg.max_tokens,
                    "messages": [
                        {"role": "system", "content": prompt},
                        {"role": "user", "content": content},
                    ],
                },
            )
            choices = data.get("choices")
            first = choices[0] if isinstance(choices, list) and choices else None
            message = first.get("message") if isinstance(first, dict) else None
            text = message.get("content") if isinstance(message, dict) else None
        elif cfg.provider == "ollama":
            data = self._post(
                (cfg.base_url or OLLAMA_BASE_URL) + "/api/generate",
                {},
                {"model": cfg.model, "system": prompt, "prompt": content, "stream": False},
            )
            text = data.get("response")
        else:
            raise AgentDiagnosisError(f"Unknown provider: {cfg.provider}")

        if not isinstance(text, str):
            raise AgentDiagnosisError(f"AI agent '{cfg.name}' returned no text content")
        return parse_diagnosis(text, cfg.model or cfg.name)


def format_ai_report(diagnosis: AIDiagnosis, scenario_name: str) -> str:
    lines = [
        "",
        f"--- AI Diagnosis ({diagnosis.model_used}): {scenario_name} ---",
        "",
        f"Analysis: {diagnosis.analysis}",
    ]
    if diagnosis.suggested_fixes:
        lines.append("")
        lines.append("Suggested Fixes:")
        for fix in diagnosis.suggested_fixes:
            lines.append(f"  {fix.field}: {fix.was} -> {fix.should_be}")
    lines.append(f"Confidence: {diagnosis.confidence}")
    lines.append("---")
    return "\n".join(lines) + "\n"


__all__ = [
    "AgentDiagnosisError",
    "AgentConfig",
    "SuggestedFix",
    "AIDiagnosis",
    "AgentRegistry",
    "AgentClient",
    "parse_diagnosis",
    "format_ai_report",
    "DEFAULT_PROMPT",
]
