"""
Alerting thresholds over the gateway's invocation metrics.

The rules themselves live in ``gateway/prometheus/alert.rules.yml`` and are
evaluated by Prometheus, not by this process. This module gives them a
schema so the file can be validated, and can build the same rule group in
code for deployments that template their own thresholds.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gateway.core.durations import DurationParseError, parse_duration
from gateway.core.metrics import INVOCATION_TOTAL, SERVICE_COUNT

DEFAULT_RULES_PATH = Path(__file__).resolve().parent.parent / "prometheus" / "alert.rules.yml"
GROUP_NAME = "prometheus/alert.rules"

_METRIC_NAME = re.compile(r"\b(gateway_[a-z_]+|up)\b")


class AlertRule(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    alert: str = Field(..., min_length=1)
    expr: str = Field(..., min_length=1)
    for_: Optional[str] = Field(None, alias="for")
    labels: Optional[dict[str, str]] = None
    annotations: Optional[dict[str, str]] = None

    @field_validator("for_")
    @classmethod
    def validate_for(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            parse_duration(v)
        except DurationParseError as exc:
            raise ValueError(f"'for' must be a duration such as 5s, got {v!r}") from exc
        return v


class RuleGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    rules: list[AlertRule]

    def rule(self, alert: str) -> AlertRule:
        for rule in self.rules:
            if rule.alert == alert:
                return rule
        raise KeyError(alert)


class RuleFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    groups: list[RuleGroup]

    def dump(self) -> str:
        """Render as a Prometheus rules file."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        return yaml.safe_dump(data, sort_keys=False)


def load_rule_file(path: Union[str, Path, None] = None) -> RuleFile:
    """Load and validate a rules file, defaulting to the packaged one."""
    path = Path(path) if path is not None else DEFAULT_RULES_PATH
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return RuleFile.model_validate(data)


def invocation_rate_expr(comparison: Literal[">", "<"], threshold: float, window: str = "10s") -> str:
    """Per-function successful invocation rate normalised by replica count."""
    return (
        f'sum by(function_name) (rate({INVOCATION_TOTAL}{{code="200"}}[{window}])'
        f" / ignoring(code) {SERVICE_COUNT}) {comparison} {threshold:g}"
    )


def invocation_rate_rule(
    name: str,
    comparison: Literal[">", "<"],
    threshold: float,
    action: str,
    *,
    window: str = "10s",
    for_: str = "5s",
    severity: str = "major",
) -> AlertRule:
    adjective = "High" if comparison == ">" else "Low"
    message = f"{adjective} invocation total on {{{{ $labels.function_name }}}}"
    return AlertRule(
        alert=name,
        expr=invocation_rate_expr(comparison, threshold, window),
        for_=for_,
        labels={"service": "gateway", "severity": severity, "action": action},
        annotations={"description": message, "summary": message},
    )


def gateway_rule_group(scale_up_above: float = 5, scale_down_below: float = 1) -> RuleGroup:
    """Liveness rule plus symmetric scale-up/scale-down invocation-rate rules."""
    return RuleGroup(
        name=GROUP_NAME,
        rules=[
            AlertRule(alert="service_down", expr="up == 0"),
            invocation_rate_rule("APIHighInvocationRate", ">", scale_up_above, "scale-up"),
            invocation_rate_rule("APILowInvocationRate", "<", scale_down_below, "scale-down"),
        ],
    )


def referenced_metrics(rule: AlertRule) -> set[str]:
    """Metric identifiers used in a rule expression."""
    return set(_METRIC_NAME.findall(rule.expr))
