from __future__ import annotations

import random

import pytest

from gdprbench.domain.models import METADATA_FIELD_COUNT, TTL_POOL, MetadataField
from gdprbench.generators import ConstantGenerator, UniformGenerator
from gdprbench.workload.schema import ValueSchema, build_pools, field_names_for

RECORD_INDEX = 7
FIELD_LENGTH = 32
EXPECTED_FIELD_NAMES = ["PUR", "TTL", "USR", "OBJ", "DEC", "ACL", "SHR", "SRC", "CAT", "Data"]


def _schema(settings, length: int = FIELD_LENGTH, seed: int = 7) -> ValueSchema:
    rng = random.Random(seed)
    return ValueSchema(
        settings,
        ConstantGenerator(length),
        UniformGenerator(0, settings.field_count - 1, rng=rng),
        rng=rng,
    )


def test_field_names_have_metadata_first_then_unique_data_names() -> None:
    assert field_names_for(10) == EXPECTED_FIELD_NAMES
    assert field_names_for(12)[9:] == ["Data", "Data1", "Data2"]
    assert field_names_for(3) == ["PUR", "TTL", "USR"]


def test_record_seven_picks_pool_entries_by_modulo(make_settings) -> None:
    settings = make_settings(fieldcount=10, purcount=3, usrcount=3)
    schema = _schema(settings)

    values = schema.build_all_values(RECORD_INDEX)

    assert values["PUR"] == b"purpose1"
    assert values["USR"] == b"user1"
    assert values["TTL"] == TTL_POOL[RECORD_INDEX % len(TTL_POOL)].encode()
    assert list(values) == EXPECTED_FIELD_NAMES


def test_metadata_values_are_deterministic_without_integrity(make_settings) -> None:
    settings = make_settings(dataintegrity=False)
    first = _schema(settings, seed=1)
    second = _schema(settings, seed=2)

    for index in (0, 1, 99, 12345):
        for position in range(METADATA_FIELD_COUNT):
            assert first.build_value(index, position) == first.build_value(index, position)
            assert first.build_value(index, position) == second.build_value(index, position)


def test_random_data_differs_but_has_configured_length(make_settings) -> None:
    settings = make_settings(dataintegrity=False)
    schema = _schema(settings)

    a = schema.build_value(RECORD_INDEX, 9)
    b = schema.build_value(RECORD_INDEX, 9)

    assert len(a) == len(b) == FIELD_LENGTH
    assert a != b
    assert a.isalnum()


def test_integrity_data_is_reproducible_and_exact_length(make_settings) -> None:
    settings = make_settings(dataintegrity=True)
    schema = _schema(settings)

    value = schema.build_value(RECORD_INDEX, 9)

    assert value == schema.build_value(RECORD_INDEX, 9)
    assert len(value) == FIELD_LENGTH
    assert value.startswith(b"7")
    assert value != schema.build_value(RECORD_INDEX + 1, 9)


def test_build_one_value_returns_a_single_known_field(make_settings) -> None:
    settings = make_settings()
    schema = _schema(settings)

    for _ in range(50):
        values = schema.build_one_value(RECORD_INDEX)
        assert len(values) == 1
        (name,) = values
        assert name in schema.field_names


def test_non_positive_pool_size_falls_back_to_default(make_settings) -> None:
    settings = make_settings(purcount=0, deccount=-5)

    pools = build_pools(settings)

    assert len(pools[MetadataField.PURPOSE]) == 100
    assert len(pools[MetadataField.DECISION]) == 2
    assert pools[MetadataField.DECISION] == ("dec0", "dec1")


def test_ttl_seconds_follows_the_ttl_pool(make_settings) -> None:
    schema = _schema(make_settings())

    assert schema.ttl_seconds(0) == 30
    assert schema.ttl_seconds(9) == 1_000_000
    assert schema.ttl_seconds(10) == 30


@pytest.mark.parametrize("name", ["PUR", "Data"])
def test_position_of_round_trips_field_names(make_settings, name: str) -> None:
    schema = _schema(make_settings())
    assert schema.field_names[schema.position_of(name)] == name
