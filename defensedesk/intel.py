from __future__ import annotations
import json
import os
import time
from typing import Any, Dict, List, Optional

import requests

from .config import AppConfig
from .models import ThreatIntel, SandboxResult


class IntelError(RuntimeError):
    """AI analysis service unreachable or returned something unusable."""


# ──────────────────────────────────────────────
# Fallbacks shown to the operator when a call fails
# ──────────────────────────────────────────────
SCENARIO_FALLBACK = "Defense subsystem failure: security analysis unavailable."

SANDBOX_FALLBACK = SandboxResult(
    verdict="SUSPICIOUS",
    risk_score=50.0,
    detected_behaviors=("Analysis failure", "Unknown payload"),
    isolation_action="Forced quarantine",
    technical_analysis="AI heuristics failed. Preventive block enabled.",
)

# ──────────────────────────────────────────────
# Prompts / response schemas
# ──────────────────────────────────────────────
_SCENARIO_PROMPT = """Act as an elite white-hat cyber sentinel focused on active, predictive defense.

Operator scenario: "{scenario}"

Your answer must contain:
1. Threat analysis: the most likely attack vector.
2. Attacker mindset: how the attacker would think and act here.
3. Defense protocol: exact technical steps to neutralize or prevent it.
4. Counter-intelligence: how to deceive or slow the attacker (honeypots, obfuscation).

Be deeply technical. Defensive and educational use only."""

_THREAT_FEED_PROMPT = (
    "List the 5 most important cybersecurity threats, new critical CVEs or data "
    "leaks reported worldwide in the last 24 to 48 hours. Summarize technically."
)

_SANDBOX_PROMPT = """You are a malware analysis sandbox. Analyze the code below statically. DO NOT execute it.
Decide whether it is malicious, suspicious or safe.
Identify system calls, obfuscation attempts, network access and access to sensitive files.

Code:
{source}"""

_THREAT_FEED_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title":     {"type": "STRING"},
            "severity":  {"type": "STRING", "enum": ["CRITICAL", "HIGH", "MEDIUM", "LOW"]},
            "summary":   {"type": "STRING"},
            "source":    {"type": "STRING"},
            "timestamp": {"type": "STRING"},
        },
    },
}

_SANDBOX_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "verdict":           {"type": "STRING", "enum": ["SAFE", "SUSPICIOUS", "MALICIOUS"]},
        "riskScore":         {"type": "NUMBER"},
        "detectedBehaviors": {"type": "ARRAY", "items": {"type": "STRING"}},
        "isolationAction":   {"type": "STRING"},
        "technicalAnalysis": {"type": "STRING"},
    },
}


class IntelClient:
    """Thin client for the hosted generative-AI service (Gemini REST API)."""

    def __init__(self, cfg: AppConfig, api_key: Optional[str] = None):
        self.cfg = cfg
        self.api_key = api_key if api_key is not None else os.environ.get(cfg.api_key_env, "")

    # ── public calls ──────────────────────────
    def analyze_scenario(self, scenario: str) -> str:
        text = self._generate(
            self.cfg.analysis_model,
            _SCENARIO_PROMPT.format(scenario=scenario),
            tools=[{"google_search": {}}],
        )
        return text.strip()

    def fetch_threat_feed(self) -> List[ThreatIntel]:
        text = self._generate(self.cfg.fast_model, _THREAT_FEED_PROMPT, schema=_THREAT_FEED_SCHEMA)
        if not text.strip():
            return []
        rows = _parse_json(text)
        if not isinstance(rows, list):
            raise IntelError("Threat feed is not a list")
        return [
            ThreatIntel(
                title=str(r.get("title", "")),
                severity=str(r.get("severity", "LOW")).upper(),
                summary=str(r.get("summary", "")),
                source=str(r.get("source", "")),
                timestamp=str(r.get("timestamp", "Recent")),
            )
            for r in rows if isinstance(r, dict)
        ]

    def analyze_code(self, source: str) -> SandboxResult:
        text = self._generate(
            self.cfg.fast_model, _SANDBOX_PROMPT.format(source=source), schema=_SANDBOX_SCHEMA,
        )
        data = _parse_json(text)
        if not isinstance(data, dict):
            raise IntelError("Sandbox result is not an object")
        try:
            return SandboxResult(
                verdict=str(data["verdict"]).upper(),
                risk_score=float(data.get("riskScore", 0)),
                detected_behaviors=tuple(str(b) for b in data.get("detectedBehaviors", [])),
                isolation_action=str(data.get("isolationAction", "")),
                technical_analysis=str(data.get("technicalAnalysis", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise IntelError(f"Malformed sandbox result: {exc}") from exc

    # ── transport ─────────────────────────────
    def _generate(self, model: str, prompt: str, schema: Optional[Dict[str, Any]] = None,
                  tools: Optional[List[Dict[str, Any]]] = None) -> str:
        if not self.api_key:
            raise IntelError(f"No API key (set {self.cfg.api_key_env})")

        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if schema is not None:
            payload["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            }
        if tools:
            payload["tools"] = tools

        url = f"{self.cfg.api_base_url.rstrip('/')}/models/{model}:generateContent"
        try:
            resp = requests.post(
                url, json=payload,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.cfg.request_timeout_s,
            )
        except requests.RequestException as exc:
            raise IntelError(f"AI service request failed: {exc}") from exc
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise IntelError(f"AI service HTTP {resp.status_code}: {resp.text[:500]}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise IntelError("AI service returned invalid JSON") from exc

        try:
            parts = data["candidates"][0]["content"]["parts"] or []
            return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))
        except (KeyError, IndexError, TypeError) as exc:
            raise IntelError("AI service response has no usable candidate text") from exc


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise IntelError(f"Unparseable JSON from AI service: {text[:200]}") from exc


def format_sandbox_report(result: SandboxResult, now: Optional[float] = None) -> str:
    """Plain-text report the operator can save after a sandbox analysis."""
    stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now if now is not None else time.time()))
    behaviors = "\n".join(f"- {b}" for b in result.detected_behaviors)
    return (
        "DEFENSEDESK - SANDBOX REPORT\n"
        "========================================\n"
        f"DATE: {stamp}\n"
        "\n"
        f"VERDICT: {result.verdict}\n"
        f"RISK SCORE: {result.risk_score:.0f}/100\n"
        f"ISOLATION ACTION: {result.isolation_action}\n"
        "\n"
        "DETECTED BEHAVIORS:\n"
        f"{behaviors}\n"
        "\n"
        "TECHNICAL ANALYSIS:\n"
        f"{result.technical_analysis}\n"
        "========================================\n"
        "Generated by DefenseDesk"
    )
