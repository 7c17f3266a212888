"""Unit tests for column value transformers."""

from __future__ import annotations

import re

import pytest

from core.errors import VaultConfigError, VaultTransformError
from transforms.anonymizers import (
    SUPPORTED_TRANSFORMERS,
    build_transformer,
    list_transformers,
    transform_value,
)


def _luhn_valid(digits: str) -> bool:
    total = 0
    for index, character in enumerate(reversed(digits)):
        digit = int(character)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


@pytest.mark.parametrize("name", [name for name in SUPPORTED_TRANSFORMERS if name != "custom"])
def test_null_values_stay_null(name: str) -> None:
    """Every transformer should keep NULL as NULL."""
    options = {"pattern": "x"} if name == "regex" else {}
    transformer = build_transformer(name, options)

    assert transform_value(transformer, None, seed=42, ordinal=0) is None


def test_transform_is_deterministic_for_seed_and_ordinal() -> None:
    """Same value, seed, and ordinal should give the same output."""
    transformer = build_transformer("email")

    first = transform_value(transformer, "alice@corp.io", seed=42, ordinal=3)
    second = transform_value(transformer, "alice@corp.io", seed=42, ordinal=3)

    assert first == second


def test_transform_depends_on_seed() -> None:
    """Different seeds should usually produce different fakes."""
    transformer = build_transformer("random")

    outputs = {transform_value(transformer, "abcdefghij", seed=seed, ordinal=0) for seed in range(5)}

    assert len(outputs) > 1


def test_email_output_is_valid_address() -> None:
    """Email fakes should look like addresses and differ from the original."""
    transformer = build_transformer("email")

    output = transform_value(transformer, "alice@corp.io", seed=1, ordinal=0)

    assert isinstance(output, str) and output != "alice@corp.io"
    assert re.fullmatch(r"[a-z]+\.[a-z]+\d+@[a-z.]+", output)


def test_email_honors_domain_option() -> None:
    """A configured domain should be used for every fake."""
    transformer = build_transformer("email", {"domain": "test.invalid"})

    output = transform_value(transformer, "bob@corp.io", seed=1, ordinal=0)

    assert str(output).endswith("@test.invalid")


def test_random_keeps_string_shape() -> None:
    """Random text should keep length and character classes."""
    transformer = build_transformer("random")

    output = transform_value(transformer, "Ab-12", seed=9, ordinal=1)

    assert isinstance(output, str) and len(output) == 5
    assert output[0].isupper() and output[1].islower() and output[2] == "-"
    assert output[3:].isdigit()


def test_random_replaces_non_ascii_letters() -> None:
    """Accented letters are randomized instead of passing through."""
    transformer = build_transformer("random")

    output = transform_value(transformer, "Łódź", seed=9, ordinal=1)

    assert isinstance(output, str) and len(output) == 4
    assert output.isascii() and output.isalpha() and output[0].isupper()


def test_random_rejects_values_without_letters_or_digits() -> None:
    """Punctuation-only text has nothing to randomize and must not pass through."""
    transformer = build_transformer("random")

    with pytest.raises(VaultTransformError):
        transform_value(transformer, "——", seed=9, ordinal=1)


def test_random_keeps_int_digit_count() -> None:
    """Random integers should keep their digit count."""
    transformer = build_transformer("random")

    output = transform_value(transformer, 4821, seed=9, ordinal=1)

    assert isinstance(output, int) and len(str(output)) == 4


def test_first_name_differs_from_original() -> None:
    """Fake first names should never equal the original."""
    transformer = build_transformer("first-name")

    outputs = [transform_value(transformer, "Alice", seed=3, ordinal=index) for index in range(20)]

    assert all(output != "Alice" for output in outputs)


def test_keep_first_char_for_text_and_numbers() -> None:
    """Only the first character or first digit should remain."""
    transformer = build_transformer("keep-first-char")

    assert transform_value(transformer, "Alice", seed=1, ordinal=0) == "A"
    assert transform_value(transformer, 9876, seed=1, ordinal=0) == 9


def test_phone_number_keeps_format() -> None:
    """Phone fakes should keep separators and digit positions."""
    transformer = build_transformer("phone-number")

    output = str(transform_value(transformer, "+1 (555) 010-2030", seed=5, ordinal=0))

    assert re.fullmatch(r"\+\d \(\d{3}\) \d{3}-\d{4}", output)


def test_phone_number_rejects_values_without_digits() -> None:
    """Unparseable phone numbers should fail the transform."""
    transformer = build_transformer("phone-number")

    with pytest.raises(VaultTransformError):
        transform_value(transformer, "call me", seed=5, ordinal=0)


def test_credit_card_is_luhn_valid_and_keeps_format() -> None:
    """Card fakes should pass the Luhn check with the original grouping."""
    transformer = build_transformer("credit-card")

    output = str(transform_value(transformer, "4111 1111 1111 1111", seed=8, ordinal=2))

    assert re.fullmatch(r"\d{4} \d{4} \d{4} \d{4}", output)
    assert _luhn_valid(output.replace(" ", ""))


def test_credit_card_rejects_short_numbers() -> None:
    """Values with too few digits are not card numbers."""
    transformer = build_transformer("credit-card")

    with pytest.raises(VaultTransformError):
        transform_value(transformer, "1234", seed=8, ordinal=0)


def test_redacted_keeps_prefix_and_masks() -> None:
    """Redaction should keep the prefix and use a fixed-width mask."""
    transformer = build_transformer("redacted", {"prefix": 2, "width": 4, "character": "#"})

    assert transform_value(transformer, "secret-value", seed=1, ordinal=0) == "se####"


@pytest.mark.parametrize("value", ["", "1", "12", "123"])
def test_redacted_never_keeps_values_within_prefix(value: str) -> None:
    """Values no longer than the prefix are masked entirely."""
    transformer = build_transformer("redacted")

    output = str(transform_value(transformer, value, seed=1, ordinal=0))

    assert output == "*" * 10
    assert value == "" or value not in output


def test_regex_substitutes_matches() -> None:
    """Regex transformer should replace every match."""
    transformer = build_transformer("regex", {"pattern": r"\d", "replacement": "X"})

    assert transform_value(transformer, "a1b22", seed=1, ordinal=0) == "aXbXX"


def test_custom_transformer_loads_user_file(tmp_path) -> None:
    """Custom transformers should call transform(value, rng)."""
    script = tmp_path / "upper.py"
    script.write_text("def transform(value, rng):\n    return str(value).upper()\n", encoding="utf-8")
    transformer = build_transformer("custom", {"path": str(script)})

    assert transform_value(transformer, "abc", seed=1, ordinal=0) == "ABC"


def test_custom_transformer_errors_become_transform_errors(tmp_path) -> None:
    """Exceptions from user code should fail the dump with context."""
    script = tmp_path / "broken.py"
    script.write_text("def transform(value, rng):\n    raise RuntimeError('boom')\n", encoding="utf-8")
    transformer = build_transformer("custom", {"path": str(script)})

    with pytest.raises(VaultTransformError):
        transform_value(transformer, "abc", seed=1, ordinal=0)


def test_build_transformer_rejects_unknown_name() -> None:
    """Unknown transformer names should be configuration errors."""
    with pytest.raises(VaultConfigError):
        build_transformer("shuffle")


def test_build_transformer_rejects_invalid_regex() -> None:
    """Invalid regex patterns should be configuration errors."""
    with pytest.raises(VaultConfigError):
        build_transformer("regex", {"pattern": "("})


def test_list_transformers_covers_every_variant() -> None:
    """Listing should return one description per transformer."""
    names = [name for name, _ in list_transformers()]

    assert names == list(SUPPORTED_TRANSFORMERS)
