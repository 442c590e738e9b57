from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from gdprbench.config import WorkloadSettings, load_properties, load_workload_settings
from gdprbench.errors import WorkloadConfigError
from gdprbench.workload import available_presets, get_preset
from gdprbench.workload.operations import OperationMix

WORKLOADS_DIR = Path(__file__).resolve().parents[2] / "workloads"

PROPERTIES = """\
# Customer-style mix
! also a comment
recordcount=500
operationcount : 2000
readproportion=0.5
updateproportion=0.5
requestdistribution=zipfian
"""


@pytest.fixture
def properties_file(tmp_path: Path) -> Path:
    path = tmp_path / "workload.properties"
    path.write_text(PROPERTIES, encoding="utf-8")
    return path


def test_defaults_match_the_reference_workload() -> None:
    settings = WorkloadSettings()
    assert settings.table == "usertable"
    assert settings.field_count == 10
    assert settings.record_count == 1000
    assert settings.read_proportion == 0.95
    assert settings.request_distribution == "uniform"
    assert settings.insert_order == "hashed"
    assert settings.insertion_retry_limit == 0


def test_load_properties_skips_comments_and_accepts_both_separators(properties_file: Path) -> None:
    properties = load_properties(properties_file)
    assert properties["recordcount"] == "500"
    assert properties["operationcount"] == "2000"
    assert len(properties) == 5


def test_properties_file_values_are_coerced(properties_file: Path) -> None:
    settings = load_workload_settings(properties_file)
    assert settings.record_count == 500
    assert settings.operation_count == 2000
    assert settings.update_proportion == 0.5
    assert settings.request_distribution == "zipfian"


def test_overrides_beat_file_and_file_beats_defaults(properties_file: Path) -> None:
    settings = load_workload_settings(
        properties_file,
        overrides={"operationcount": "10"},
        defaults={"recordcount": "99", "fieldcount": "12"},
    )
    assert settings.operation_count == 10
    assert settings.record_count == 500
    assert settings.field_count == 12


def test_environment_variables_use_the_gdpr_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GDPR_FIELDCOUNT", "12")
    monkeypatch.setenv("GDPR_REQUESTDISTRIBUTION", "latest")

    settings = load_workload_settings()

    assert settings.field_count == 12
    assert settings.request_distribution == "latest"
    assert load_workload_settings(defaults={"fieldcount": "11"}).field_count == 11


def test_record_count_zero_means_unbounded() -> None:
    settings = WorkloadSettings(recordcount=0)
    assert settings.effective_record_count == sys.maxsize


def test_insert_count_defaults_to_the_rest_of_the_records() -> None:
    settings = WorkloadSettings(recordcount=100, insertstart=40)
    assert settings.effective_insert_count == 60


@pytest.mark.parametrize(
    "properties",
    [
        {"dataintegrity": "true", "fieldlengthdistribution": "uniform"},
        {"recordcount": "100", "insertstart": "50", "insertcount": "60"},
        {"fieldcount": "5", "readmetauserproportion": "0.1"},
        {"requestdistribution": "pareto"},
        {"minscanlength": "10", "maxscanlength": "5"},
        {"readproportion": "-0.1"},
        {"fieldcount": "0"},
        {"recordcount": "0", "requestdistribution": "latest"},
    ],
)
def test_invalid_combinations_are_configuration_errors(properties: dict) -> None:
    with pytest.raises(WorkloadConfigError):
        load_workload_settings(overrides=properties)


def test_few_fields_are_fine_without_metadata_operations() -> None:
    settings = load_workload_settings(overrides={"fieldcount": "5"})
    assert settings.field_count == 5


def test_validation_error_surfaces_when_built_directly() -> None:
    with pytest.raises(ValidationError):
        WorkloadSettings(recordcount=10, insertstart=5, insertcount=6)


def test_missing_properties_file_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(WorkloadConfigError):
        load_workload_settings(tmp_path / "missing.properties")


@pytest.mark.parametrize("name", available_presets())
def test_every_preset_yields_a_valid_non_empty_mix(name: str) -> None:
    settings = load_workload_settings(
        overrides={"recordcount": "100"}, defaults=get_preset(name).properties
    )
    mix = OperationMix.from_settings(settings)
    assert not mix.is_empty


def test_preset_values_yield_to_overrides() -> None:
    settings = load_workload_settings(
        overrides={"readproportion": "0.9"}, defaults=get_preset("customer").properties
    )
    assert settings.read_proportion == 0.9
    assert settings.update_proportion == 0.4
    assert settings.request_distribution == "zipfian"


def test_regulator_turns_on_the_startup_calls() -> None:
    settings = load_workload_settings(defaults=get_preset("regulator").properties)
    assert settings.read_log and settings.check_compliance
    assert settings.read_proportion == 0.0


def test_unknown_preset_is_a_configuration_error() -> None:
    with pytest.raises(WorkloadConfigError):
        get_preset("auditor")


@pytest.mark.parametrize("path", sorted(WORKLOADS_DIR.glob("*.properties")), ids=lambda p: p.name)
def test_bundled_workload_files_are_valid(path: Path) -> None:
    settings = load_workload_settings(path)
    assert not OperationMix.from_settings(settings).is_empty


@pytest.mark.parametrize("name", available_presets())
def test_preset_descriptions_name_the_actor_first(name: str) -> None:
    description = get_preset(name).description
    actor, sep, mix = description.partition(": ")
    assert sep and actor and mix
    assert " -- " not in description
