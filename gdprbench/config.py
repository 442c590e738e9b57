"""
Configuration settings for the GDPR workload benchmark.

Two settings objects are defined:

- `Settings`: harness configuration (database connection, logging, thread
  count, throttling, results location) loaded from environment variables
  or `.env`.
- `WorkloadSettings`: the workload properties. Every field can be given by
  its benchmark property name (``fieldcount``, ``readproportion``, ...), by a
  ``GDPR_``-prefixed environment variable (``GDPR_FIELDCOUNT``), or by its
  Python name. Property files use the Java ``key=value`` format.
"""
from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Dict, Literal, Mapping, Optional

from pydantic import AliasChoices, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gdprbench.domain.models import METADATA_FIELD_COUNT
from gdprbench.errors import WorkloadConfigError


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("gdprbench", alias="DB_NAME")
    db_pool_max_size: int = Field(16, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Benchmark defaults
    benchmark_threads: int = Field(4, alias="BENCHMARK_THREADS")
    benchmark_target_ops: Optional[float] = Field(None, alias="BENCHMARK_TARGET_OPS")
    benchmark_results_dir: str = Field("results", alias="BENCHMARK_RESULTS_DIR")
    benchmark_backend: Literal["memory", "postgres"] = Field("memory", alias="BENCHMARK_BACKEND")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


def _prop(name: str) -> AliasChoices:
    """Accept a field under its property name or its GDPR_ environment name."""
    env_name = "GDPR_" + name.upper().replace(".", "_")
    return AliasChoices(name, env_name)


FieldLengthDistribution = Literal["constant", "uniform", "zipfian", "histogram"]
RequestDistribution = Literal["uniform", "zipfian", "latest", "hotspot", "exponential", "sequential"]
ScanLengthDistribution = Literal["uniform", "zipfian"]
InsertOrder = Literal["ordered", "hashed"]


class WorkloadSettings(BaseSettings):
    """
    Workload properties. Defaults match the reference benchmark.
    """

    table: str = Field("usertable", validation_alias=_prop("table"))
    field_count: int = Field(10, ge=1, validation_alias=_prop("fieldcount"))

    # Field values
    field_length_distribution: FieldLengthDistribution = Field(
        "constant", validation_alias=_prop("fieldlengthdistribution")
    )
    field_length: int = Field(100, ge=1, validation_alias=_prop("fieldlength"))
    min_field_length: int = Field(1, ge=1, validation_alias=_prop("minfieldlength"))
    field_length_histogram: str = Field("hist.txt", validation_alias=_prop("fieldlengthhistogram"))
    read_all_fields: bool = Field(True, validation_alias=_prop("readallfields"))
    write_all_fields: bool = Field(False, validation_alias=_prop("writeallfields"))
    data_integrity: bool = Field(False, validation_alias=_prop("dataintegrity"))

    # One-shot startup calls
    read_log: bool = Field(True, validation_alias=_prop("readlog"))
    check_compliance: bool = Field(True, validation_alias=_prop("checkcompliance"))

    # Metadata pool sizes
    purpose_count: int = Field(100, validation_alias=_prop("purcount"))
    user_count: int = Field(10000, validation_alias=_prop("usrcount"))
    objective_count: int = Field(100, validation_alias=_prop("objcount"))
    decision_count: int = Field(2, validation_alias=_prop("deccount"))
    acl_count: int = Field(10, validation_alias=_prop("aclcount"))
    shared_count: int = Field(10, validation_alias=_prop("shrcount"))
    source_count: int = Field(10, validation_alias=_prop("srccount"))
    category_count: int = Field(10, validation_alias=_prop("catcount"))

    # Operation mix
    read_proportion: float = Field(0.95, ge=0, validation_alias=_prop("readproportion"))
    read_meta_purpose_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("readmetapurposeproportion")
    )
    read_meta_user_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("readmetauserproportion")
    )
    update_proportion: float = Field(0.0, ge=0, validation_alias=_prop("updateproportion"))
    update_meta_purpose_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("updatemetapurposeproportion")
    )
    update_meta_user_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("updatemetauserproportion")
    )
    insert_proportion: float = Field(0.0, ge=0, validation_alias=_prop("insertproportion"))
    delete_proportion: float = Field(0.0, ge=0, validation_alias=_prop("deleteproportion"))
    delete_meta_purpose_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("deletemetapurposeproportion")
    )
    delete_meta_user_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("deletemetauserproportion")
    )
    scan_proportion: float = Field(0.0, ge=0, validation_alias=_prop("scanproportion"))
    read_modify_write_proportion: float = Field(
        0.0, ge=0, validation_alias=_prop("readmodifywriteproportion")
    )

    # Key selection
    request_distribution: RequestDistribution = Field(
        "uniform", validation_alias=_prop("requestdistribution")
    )
    hotspot_data_fraction: float = Field(0.2, ge=0, le=1, validation_alias=_prop("hotspotdatafraction"))
    hotspot_opn_fraction: float = Field(0.8, ge=0, le=1, validation_alias=_prop("hotspotopnfraction"))
    exponential_percentile: float = Field(
        95.0, gt=0, lt=100, validation_alias=_prop("exponential.percentile")
    )
    exponential_frac: float = Field(0.8571428571, gt=0, validation_alias=_prop("exponential.frac"))
    min_scan_length: int = Field(1, ge=1, validation_alias=_prop("minscanlength"))
    max_scan_length: int = Field(1000, ge=1, validation_alias=_prop("maxscanlength"))
    scan_length_distribution: ScanLengthDistribution = Field(
        "uniform", validation_alias=_prop("scanlengthdistribution")
    )
    insert_order: InsertOrder = Field("hashed", validation_alias=_prop("insertorder"))
    zero_padding: int = Field(1, ge=0, validation_alias=_prop("zeropadding"))

    # Record bounds
    record_count: int = Field(1000, ge=0, validation_alias=_prop("recordcount"))
    operation_count: int = Field(1000, ge=0, validation_alias=_prop("operationcount"))
    insert_start: int = Field(0, ge=0, validation_alias=_prop("insertstart"))
    insert_count: Optional[int] = Field(None, ge=0, validation_alias=_prop("insertcount"))

    # Load-phase insert retries
    insertion_retry_limit: int = Field(
        0, ge=0, validation_alias=_prop("core_workload_insertion_retry_limit")
    )
    insertion_retry_interval: float = Field(
        3.0, ge=0, validation_alias=_prop("core_workload_insertion_retry_interval")
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def effective_record_count(self) -> int:
        """Record count, with 0 meaning unbounded."""
        return self.record_count or sys.maxsize

    @property
    def effective_insert_count(self) -> int:
        if self.insert_count is not None:
            return self.insert_count
        return self.effective_record_count - self.insert_start

    def proportions(self) -> Dict[str, float]:
        """Configured weight per operation kind name."""
        return {
            "READ": self.read_proportion,
            "READMETAPURPOSE": self.read_meta_purpose_proportion,
            "READMETAUSER": self.read_meta_user_proportion,
            "UPDATE": self.update_proportion,
            "UPDATEMETAPURPOSE": self.update_meta_purpose_proportion,
            "UPDATEMETAUSER": self.update_meta_user_proportion,
            "INSERT": self.insert_proportion,
            "DELETE": self.delete_proportion,
            "DELETEMETAPURPOSE": self.delete_meta_purpose_proportion,
            "DELETEMETAUSER": self.delete_meta_user_proportion,
            "SCAN": self.scan_proportion,
            "READMODIFYWRITE": self.read_modify_write_proportion,
        }

    @model_validator(mode="after")
    def _check_consistency(self) -> WorkloadSettings:
        if self.data_integrity and self.field_length_distribution != "constant":
            raise ValueError("Must have constant field size to check data integrity.")
        if self.insert_start + self.effective_insert_count > self.effective_record_count:
            raise ValueError(
                "Invalid combination of insertstart, insertcount and recordcount: "
                "recordcount must be at least insertstart + insertcount."
            )
        if self.request_distribution == "latest" and self.record_count == 0:
            raise ValueError("requestdistribution=latest needs a bounded recordcount.")
        if self.min_scan_length > self.max_scan_length:
            raise ValueError("minscanlength must not exceed maxscanlength.")
        if self.field_length_distribution in ("uniform", "zipfian") and (
            self.min_field_length > self.field_length
        ):
            raise ValueError("minfieldlength must not exceed fieldlength.")
        if self.field_count < METADATA_FIELD_COUNT:
            meta = [
                name
                for name, weight in self.proportions().items()
                if "META" in name and weight > 0
            ]
            if meta:
                raise ValueError(
                    f"Metadata operations {', '.join(meta)} need fieldcount >= "
                    f"{METADATA_FIELD_COUNT}, got {self.field_count}."
                )
        return self


def load_properties(path: Path | str) -> Dict[str, str]:
    """
    Parse a Java-style properties file into a dict.

    Lines starting with ``#`` or ``!`` are comments. Keys and values are
    separated by the first ``=`` or ``:``.
    """
    properties: Dict[str, str] = {}
    with Path(path).open("r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line[0] in "#!":
                continue
            cut = min((i for i in (line.find("="), line.find(":")) if i >= 0), default=-1)
            if cut < 0:
                properties[line] = ""
                continue
            properties[line[:cut].strip()] = line[cut + 1 :].strip()
    return properties


def load_workload_settings(
    properties_file: Path | str | None = None,
    overrides: Optional[Mapping[str, object]] = None,
    defaults: Optional[Mapping[str, object]] = None,
) -> WorkloadSettings:
    """
    Build validated workload settings.

    Precedence, highest first: ``overrides``, the properties file,
    ``defaults`` (e.g. a preset), ``GDPR_`` environment variables, field
    defaults.

    Raises
    ------
    WorkloadConfigError
        If the file cannot be read or any value is invalid.
    """
    values: Dict[str, object] = dict(defaults or {})
    if properties_file is not None:
        try:
            values.update(load_properties(properties_file))
        except OSError as exc:
            raise WorkloadConfigError(f"Cannot read properties file {properties_file}: {exc}") from exc
    if overrides:
        values.update(overrides)
    try:
        return WorkloadSettings(**values)
    except ValidationError as exc:
        raise WorkloadConfigError(str(exc)) from exc


__all__ = [
    "Settings",
    "WorkloadSettings",
    "get_settings",
    "load_properties",
    "load_workload_settings",
]
