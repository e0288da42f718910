"""scenariokit error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Identity (source ids and record identity)
- 4xxx: Scenario (missing prerequisites, protected items)
- 5xxx: Derivation (building sources from external records)
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Identity (3xxx)
    IDENTITY_EXHAUSTED = 3001
    IDENTITY_OUT_OF_RANGE = 3002
    IDENTITY_CONFLICT = 3003
    IDENTITY_INVALID_REPLICATION = 3004

    # Scenario (4xxx)
    SCENARIO_NO_DESIRED = 4001
    SCENARIO_NO_UNDESIRED = 4002
    SCENARIO_RULES_UNAVAILABLE = 4003
    SOURCE_LOCKED = 4004
    SCENARIO_PERMANENT_ITEM = 4005
    SCENARIO_UNKNOWN_SOURCE = 4006
    SCENARIO_NOT_FOUND = 4007
    SCENARIO_NOT_DESIRABLE = 4008
    SOURCE_FIELD_FIXED = 4009
    SOURCE_RECORD_TYPE_FIXED = 4010

    # Derivation (5xxx)
    DERIVATION_INVALID_RECORD = 5001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ScenarioKitError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'IDENTITY_EXHAUSTED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ScenarioKitError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class IdentityError(ScenarioKitError):
    """Source id and record identity errors. Always fatal to the current edit."""

    @classmethod
    def exhausted(cls, in_use: int) -> "IdentityError":
        return cls(
            code=ErrorCode.IDENTITY_EXHAUSTED,
            message="No source ids available, remove unused sources and save the study",
            details={"in_use": in_use},
        )

    @classmethod
    def out_of_range(cls, source_id: int) -> "IdentityError":
        return cls(
            code=ErrorCode.IDENTITY_OUT_OF_RANGE,
            message=f"Source id {source_id} is outside the valid range",
            details={"source_id": source_id},
        )

    @classmethod
    def conflicting_identity(cls, source_id: int) -> "IdentityError":
        return cls(
            code=ErrorCode.IDENTITY_CONFLICT,
            message=f"Source {source_id} cannot have both an external key and a user record id",
            details={"source_id": source_id},
        )

    @classmethod
    def invalid_replication(cls, source_id: int, record_type: str) -> "IdentityError":
        return cls(
            code=ErrorCode.IDENTITY_INVALID_REPLICATION,
            message=f"Only TV sources can be replications, source {source_id} is {record_type}",
            details={"source_id": source_id, "record_type": record_type},
        )


class ScenarioError(ScenarioKitError):
    """A scenario operation cannot proceed until the caller fixes the scenario."""

    @classmethod
    def no_desired(cls, scenario_key: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_NO_DESIRED,
            message="There are no desired stations in the scenario",
            details={"scenario_key": scenario_key},
        )

    @classmethod
    def no_undesired(cls, scenario_key: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_NO_UNDESIRED,
            message="There are no undesired stations in the scenario",
            details={"scenario_key": scenario_key},
        )

    @classmethod
    def rules_unavailable(cls) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_RULES_UNAVAILABLE,
            message="Interference rule table is not available",
        )

    @classmethod
    def source_locked(cls, source_id: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SOURCE_LOCKED,
            message=f"Source {source_id} is locked and cannot be edited",
            details={"source_id": source_id},
        )

    @classmethod
    def permanent_item(cls, scenario_key: int, source_id: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_PERMANENT_ITEM,
            message=f"Source {source_id} is a permanent entry in scenario {scenario_key}",
            details={"scenario_key": scenario_key, "source_id": source_id},
        )

    @classmethod
    def unknown_source(cls, source_id: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_UNKNOWN_SOURCE,
            message=f"Source {source_id} does not exist in the study",
            details={"source_id": source_id},
        )

    @classmethod
    def not_found(cls, scenario_key: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_NOT_FOUND,
            message=f"Scenario {scenario_key} does not exist",
            details={"scenario_key": scenario_key},
        )

    @classmethod
    def not_desirable(cls, source_id: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SCENARIO_NOT_DESIRABLE,
            message=f"Source {source_id} is a wireless station and cannot be desired",
            details={"source_id": source_id},
        )

    @classmethod
    def fields_fixed(cls, source_id: int, fields: list[str]) -> "ScenarioError":
        return cls(
            code=ErrorCode.SOURCE_FIELD_FIXED,
            message=f"Cannot edit fields of source {source_id}: {', '.join(fields)}",
            details={"source_id": source_id, "fields": fields},
        )

    @classmethod
    def record_type_fixed(cls, source_id: int) -> "ScenarioError":
        return cls(
            code=ErrorCode.SOURCE_RECORD_TYPE_FIXED,
            message=f"Record type of source {source_id} cannot change",
            details={"source_id": source_id},
        )


class DerivationError(ScenarioKitError):
    """A source could not be built from an external record."""

    @classmethod
    def invalid_record(cls, dataset_id: int, record_id: str, reason: str) -> "DerivationError":
        return cls(
            code=ErrorCode.DERIVATION_INVALID_RECORD,
            message=f"Cannot derive source from record {record_id} in data set {dataset_id}: {reason}",
            details={"dataset_id": dataset_id, "record_id": record_id, "reason": reason},
        )


class InternalError(ScenarioKitError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
