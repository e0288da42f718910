"""Interference rule table."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scenariokit.config.constants import RULE_DISTANCE_MAX_KM, RULE_DISTANCE_MIN_KM
from scenariokit.sources.models import Country, ServiceType


class InterferenceRule(BaseModel):
    """One interference rule: a maximum protection distance for a channel delta."""

    model_config = ConfigDict(frozen=True)

    service_type: ServiceType = Field(description="Service type of the desired station.")
    undesired_service_type: ServiceType = Field(
        description="Service type of the undesired station."
    )
    channel_delta: int = Field(description="Undesired channel minus desired channel.")
    distance_km: Annotated[float, Field(ge=RULE_DISTANCE_MIN_KM, le=RULE_DISTANCE_MAX_KM)]
    is_active: bool = True
    analog_only: bool = Field(
        default=False,
        description="Rule applies only when the desired station is analog.",
    )
    country: Country | None = Field(
        default=None,
        description="Desired station country the rule applies to, None for all.",
    )

    @field_validator("country", mode="before")
    @classmethod
    def parse_country(cls, v: object) -> object:
        if isinstance(v, str):
            try:
                return Country[v.upper()]
            except KeyError:
                raise ValueError(f"Unknown country: {v}") from None
        return v

    def applies_to(
        self, service_type: ServiceType, undesired_service_type: ServiceType, country: Country
    ) -> bool:
        return (
            self.is_active
            and not (self.analog_only and service_type.is_digital)
            and self.service_type is service_type
            and self.undesired_service_type is undesired_service_type
            and (self.country is None or self.country is country)
        )


class RuleTable:
    """Read-only set of interference rules."""

    def __init__(self, rules: Iterable[InterferenceRule]) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[InterferenceRule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def max_distance(
        self,
        service_type: ServiceType,
        undesired_service_type: ServiceType,
        country: Country,
        channel_delta: int,
    ) -> float | None:
        """Largest distance among matching active rules for the delta, None if none match."""
        distances = [
            rule.distance_km
            for rule in self._rules
            if rule.channel_delta == channel_delta
            and rule.applies_to(service_type, undesired_service_type, country)
        ]
        return max(distances) if distances else None

    def deltas(
        self,
        service_type: ServiceType,
        undesired_service_type: ServiceType,
        country: Country,
    ) -> dict[int, float]:
        """Culling distance per channel delta for one service pairing."""
        result: dict[int, float] = {}
        for rule in self._rules:
            if rule.applies_to(service_type, undesired_service_type, country):
                current = result.get(rule.channel_delta)
                if current is None or rule.distance_km > current:
                    result[rule.channel_delta] = rule.distance_km
        return result
