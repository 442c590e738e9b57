from __future__ import annotations

import random

import pytest

from gdprbench.domain.models import Status
from gdprbench.generators import ConstantGenerator, UniformGenerator
from gdprbench.measurements import VERIFY, Measurements
from gdprbench.workload.schema import ValueSchema
from gdprbench.workload.verification import verify_row

RECORD_INDEX = 42


@pytest.fixture
def schema(make_settings) -> ValueSchema:
    settings = make_settings(dataintegrity=True, fieldlength=24)
    rng = random.Random(0)
    return ValueSchema(
        settings,
        ConstantGenerator(24),
        UniformGenerator(0, settings.field_count - 1, rng=rng),
        rng=rng,
    )


def test_values_built_for_a_record_verify_ok(schema: ValueSchema, measurements: Measurements) -> None:
    cells = schema.build_all_values(RECORD_INDEX)

    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.OK
    assert measurements.status_counts(VERIFY) == {"OK": 1}
    assert measurements.count(VERIFY) == 1


def test_single_byte_mutation_is_unexpected_state(
    schema: ValueSchema, measurements: Measurements
) -> None:
    cells = schema.build_all_values(RECORD_INDEX)
    data = bytearray(cells["Data"])
    data[-1] = ord("x") if data[-1] != ord("x") else ord("y")
    cells["Data"] = bytes(data)

    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.UNEXPECTED_STATE


def test_values_of_another_record_do_not_verify(
    schema: ValueSchema, measurements: Measurements
) -> None:
    cells = schema.build_all_values(RECORD_INDEX + 1)
    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.UNEXPECTED_STATE


@pytest.mark.parametrize("cells", [None, {}])
def test_empty_data_is_an_error(schema: ValueSchema, measurements: Measurements, cells) -> None:
    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.ERROR
    assert measurements.status_counts(VERIFY) == {"ERROR": 1}


def test_unknown_field_is_unexpected_state(schema: ValueSchema, measurements: Measurements) -> None:
    cells = {"NotAField": b"whatever"}
    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.UNEXPECTED_STATE


def test_partial_rows_verify_field_by_field(schema: ValueSchema, measurements: Measurements) -> None:
    cells = {"USR": schema.expected_value(RECORD_INDEX, 2)}
    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.OK


def test_text_values_are_compared_as_utf8(schema: ValueSchema, measurements: Measurements) -> None:
    cells = {name: value.decode("utf-8") for name, value in schema.build_all_values(RECORD_INDEX).items()}
    assert verify_row(schema, RECORD_INDEX, cells, measurements) is Status.OK
