"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SCENARIOKIT__SECTION__KEY)
3. Study YAML (<study dir>/scenariokit.yaml)
4. Global YAML (~/.config/scenariokit/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    SCENARIOKIT__<SECTION>__<KEY>=<VALUE>

Examples:
    SCENARIOKIT__LOGGING__LEVEL=DEBUG
    SCENARIOKIT__STUDY__KM_PER_DEGREE=111.0
    SCENARIOKIT__MX__DISABLE_MX=true
    SCENARIOKIT__MX__CO_CHANNEL_DISTANCE_KM=8
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from scenariokit.config.constants import (
    KM_PER_DEGREE_MAX,
    KM_PER_DEGREE_MIN,
    WIRELESS_CULL_ERP_KW,
    WIRELESS_CULL_HAAT_M,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
CurveSet = Literal["F50_50", "F50_90", "F50_10"]
CountryCode = Literal["US", "CA", "MX"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SCENARIOKIT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every culling and MX decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ContourLevels(BaseModel):
    """Service contour levels (dBu) for one TV station class, by band."""

    vlo: float
    vhi: float
    uhf: float


def _digital() -> ContourLevels:
    return ContourLevels(vlo=28.0, vhi=36.0, uhf=41.0)


def _digital_lptv() -> ContourLevels:
    return ContourLevels(vlo=43.0, vhi=48.0, uhf=51.0)


def _analog() -> ContourLevels:
    return ContourLevels(vlo=47.0, vhi=56.0, uhf=64.0)


def _analog_lptv() -> ContourLevels:
    return ContourLevels(vlo=62.0, vhi=68.0, uhf=74.0)


class FMContourLevels(BaseModel):
    """FM service contour levels (dBu) by station category."""

    fm: float = 60.0
    fm_b: float = 54.0
    fm_b1: float = 57.0
    fm_ed: float = 60.0
    fm_lp: float = 60.0
    fm_tx: float = 60.0


class CountryParameters(BaseModel):
    """Per-country contour definitions used by the rule extra distance."""

    digital: ContourLevels = Field(default_factory=_digital)
    digital_lptv: ContourLevels = Field(default_factory=_digital_lptv)
    analog: ContourLevels = Field(default_factory=_analog)
    analog_lptv: ContourLevels = Field(default_factory=_analog_lptv)
    fm: FMContourLevels = Field(default_factory=FMContourLevels)
    digital_curve_set: CurveSet = Field(
        default="F50_90",
        description="Propagation curve set for digital TV service contours.",
    )
    analog_curve_set: CurveSet = Field(
        default="F50_50",
        description="Propagation curve set for analog TV service contours.",
    )
    fm_curve_set: CurveSet = Field(
        default="F50_50",
        description="Propagation curve set for FM service contours.",
    )
    use_dipole_correction: bool = Field(
        default=False,
        description="Adjust UHF TV contour levels for dipole gain by channel frequency.",
    )
    dipole_center_frequency_mhz: float = Field(
        default=615.0,
        gt=0,
        description="Frequency at which the dipole correction is zero.",
    )


def _default_countries() -> dict[CountryCode, CountryParameters]:
    return {"US": CountryParameters(), "CA": CountryParameters(), "MX": CountryParameters()}


class RuleExtraDistanceConfig(BaseModel):
    """Rule extra distance by contour-adjusted ERP.

    The desired station's ERP is adjusted to the US UHF digital contour and
    compared against the three break points in order, selecting one of four
    distances.

    Env vars:
        SCENARIOKIT__STUDY__RULE_EXTRA__USE_MAXIMUM: Always use maximum_distance_km
    """

    low_erp_kw: float = 0.2
    medium_erp_kw: float = 1.5
    high_erp_kw: float = 15.0
    low_km: float = 72.0
    low_medium_km: float = 95.0
    medium_high_km: float = 120.0
    high_km: float = 163.0
    use_maximum: bool = Field(
        default=False,
        description="Ignore ERP and always use the study maximum distance. "
        "TRADEOFF: Never misses an undesired but searches a much larger area.",
    )

    @model_validator(mode="after")
    def validate_break_points(self) -> "RuleExtraDistanceConfig":
        if not (0.0 < self.low_erp_kw < self.medium_erp_kw < self.high_erp_kw):
            raise ValueError("Rule extra distance ERP break points must be positive and ascending")
        return self


def _default_wireless_cull() -> list[list[float]]:
    return [
        [23, 22, 20, 18, 14, 13, 12, 10, 8],
        [18, 17, 16, 14, 11, 11, 10, 8, 6],
        [15, 14, 13, 12, 10, 9, 8, 7, 6],
        [12, 11, 11, 10, 8, 8, 7, 6, 5],
        [11, 10, 10, 9, 7, 7, 6, 5, 4],
        [10, 9, 9, 8, 7, 6, 6, 5, 4],
        [9, 8, 8, 7, 6, 6, 5, 4, 3],
        [7, 7, 6, 6, 5, 5, 4, 3, 3],
    ]


class StudyParameters(BaseModel):
    """Study-level parameters consumed by culling.

    Env vars:
        SCENARIOKIT__STUDY__KM_PER_DEGREE: Spherical earth distance
        SCENARIOKIT__STUDY__MAXIMUM_DISTANCE_KM: Upper bound for the rule extra distance
    """

    km_per_degree: float = Field(
        default=111.15,
        description="Spherical earth km per degree of arc used for all distance checks.",
    )
    maximum_distance_km: float = Field(
        default=300.0,
        description="Rule extra distance when use_maximum is set.",
    )
    countries: dict[CountryCode, CountryParameters] = Field(default_factory=_default_countries)
    rule_extra: RuleExtraDistanceConfig = Field(default_factory=RuleExtraDistanceConfig)
    wireless_cull_distances_km: list[list[float]] = Field(
        default_factory=_default_wireless_cull,
        description="Wireless cull distance table, rows by HAAT break point, "
        "columns by ERP break point.",
    )

    @field_validator("km_per_degree")
    @classmethod
    def validate_km_per_degree(cls, v: float) -> float:
        if not (KM_PER_DEGREE_MIN <= v <= KM_PER_DEGREE_MAX):
            raise ValueError(
                f"km_per_degree must be {KM_PER_DEGREE_MIN}-{KM_PER_DEGREE_MAX}, got {v}"
            )
        return v

    @field_validator("wireless_cull_distances_km")
    @classmethod
    def validate_wireless_cull(cls, v: list[list[float]]) -> list[list[float]]:
        if len(v) != len(WIRELESS_CULL_HAAT_M) or any(
            len(row) != len(WIRELESS_CULL_ERP_KW) for row in v
        ):
            raise ValueError(
                f"Wireless cull table must be {len(WIRELESS_CULL_HAAT_M)}x"
                f"{len(WIRELESS_CULL_ERP_KW)}"
            )
        if any(d <= 0 for row in v for d in row):
            raise ValueError("Wireless cull distances must be positive")
        return v

    def for_country(self, code: str) -> CountryParameters:
        return self.countries.get(code) or CountryParameters()  # type: ignore[call-overload]


class MXConfig(BaseModel):
    """Mutual-exclusivity options for scenario building.

    Env vars:
        SCENARIOKIT__MX__DISABLE_MX: Skip MX checks entirely
        SCENARIOKIT__MX__FACILITY_ID_ONLY: Only same-facility records are MX
        SCENARIOKIT__MX__PREFER_OPERATING: Operating records win MX ties first
        SCENARIOKIT__MX__CO_CHANNEL_DISTANCE_KM: Co-channel MX distance
    """

    disable_mx: bool = Field(
        default=False,
        description="Disable MX checks. Candidates may then be both desired and undesired.",
    )
    facility_id_only: bool = Field(
        default=False,
        description="Only records for the same facility are considered MX.",
    )
    prefer_operating: bool = Field(
        default=False,
        description="Prefer operating records before service and status ranking.",
    )
    co_channel_distance_km: float = Field(
        default=5.0,
        description="Co-channel records closer than this are MX. 0 disables the distance test.",
    )

    @field_validator("co_channel_distance_km")
    @classmethod
    def validate_distance(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"co_channel_distance_km must be >= 0, got {v}")
        return v


class ScenarioKitConfig(BaseModel):
    """Root configuration for scenariokit.

    All settings can be configured via:
    1. Environment variables: SCENARIOKIT__SECTION__KEY
    2. YAML config files (study or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    study: StudyParameters = Field(default_factory=StudyParameters)
    mx: MXConfig = Field(default_factory=MXConfig)
