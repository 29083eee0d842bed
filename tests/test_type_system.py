import pytest

from safelang.type_system import (
    SafetyLevel,
    high,
    raw,
    validate_raw,
    validated,
    example_usage,
)


def test_level_ordering_matches_source_constants():
    assert int(raw(0).level) == 0
    assert int(validated(0).level) == 1
    assert int(high(0).level) == 2
    assert int(validate_raw(raw(0)).level) == int(SafetyLevel.VALIDATED)


def test_raw_to_high_chain_keeps_value():
    payload = [1, 2, 3]
    result = validate_raw(raw(payload)).into_high()
    assert result.level is SafetyLevel.HIGH
    assert result.unwrap() is payload


def test_validate_raw_rejects_non_raw():
    with pytest.raises(TypeError):
        validate_raw(high(5))
    with pytest.raises(TypeError):
        validate_raw(validated(5))


def test_into_high_requires_validated():
    with pytest.raises(TypeError):
        raw(1).into_high()
    with pytest.raises(TypeError):
        high(1).into_high()


def test_constructors_set_levels():
    assert raw("x").level is SafetyLevel.RAW
    assert validated("x").level is SafetyLevel.VALIDATED
    assert high("x").level is SafetyLevel.HIGH


def test_example_usage_yields_high_ten():
    result = example_usage()
    assert result.level is SafetyLevel.HIGH
    assert result.unwrap() == 10