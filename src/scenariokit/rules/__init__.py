"""Interference rules and distance culling."""

from scenariokit.rules.culling import (
    CullRole,
    channel_delta,
    cull,
    rule_distance,
    wireless_cull_distance,
)
from scenariokit.rules.extra_distance import rule_extra_distance
from scenariokit.rules.models import InterferenceRule, RuleTable

__all__ = [
    "CullRole",
    "InterferenceRule",
    "RuleTable",
    "channel_delta",
    "cull",
    "rule_distance",
    "rule_extra_distance",
    "wireless_cull_distance",
]
