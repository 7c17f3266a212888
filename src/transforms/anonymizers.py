"""Deterministic column value transformers.

This module defines the closed set of transformers and a single dispatch
function. Every generated value is a pure function of the original value,
the dump seed, and the row ordinal, so fixtures are reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import hmac
import random
import re
from typing import Callable, Literal, Mapping, cast

from core.errors import VaultConfigError, VaultTransformError
from transforms.custom_loader import CustomTransformCallable, load_custom_transform
from transforms.word_lists import EMAIL_DOMAINS, FIRST_NAMES, LAST_NAMES

TransformerName = Literal[
    "keep",
    "random",
    "first-name",
    "email",
    "keep-first-char",
    "phone-number",
    "credit-card",
    "redacted",
    "regex",
    "custom",
]
SUPPORTED_TRANSFORMERS: tuple[TransformerName, ...] = (
    "keep",
    "random",
    "first-name",
    "email",
    "keep-first-char",
    "phone-number",
    "credit-card",
    "redacted",
    "regex",
    "custom",
)
TRANSFORMER_DESCRIPTIONS: dict[TransformerName, str] = {
    "keep": "Keep the original value.",
    "random": "Random value with the same shape (character classes, digit count).",
    "first-name": "Replace with a fake first name.",
    "email": "Replace with a fake, valid email address.",
    "keep-first-char": "Keep only the first character (or first digit).",
    "phone-number": "Replace every digit, keeping the phone number format.",
    "credit-card": "Replace with a Luhn-valid card number in the same format.",
    "redacted": "Keep a short prefix and mask the rest with a fixed-width mask.",
    "regex": "Substitute regex matches with a replacement string.",
    "custom": "Call transform(value, rng) from a user Python file.",
}
# generated values are re-drawn when they collide with the original
_REDRAW_ON_COLLISION: frozenset[str] = frozenset(
    {"random", "first-name", "email", "phone-number", "credit-card"}
)
_MAX_DRAWS = 16
_MIN_CARD_DIGITS = 12
_MAX_CARD_DIGITS = 19


@dataclass(frozen=True)
class TransformerOptions:
    """Parsed transformer options.

    Attributes:
        character: Mask character for ``redacted``.
        width: Mask width for ``redacted``.
        prefix: Kept prefix length for ``redacted``.
        pattern: Compiled pattern for ``regex``.
        replacement: Replacement string for ``regex``.
        domain: Fixed email domain for ``email``.
        custom: Loaded callable for ``custom``.
    """

    character: str = "*"
    width: int = 10
    prefix: int = 3
    pattern: re.Pattern[str] | None = None
    replacement: str = ""
    domain: str | None = None
    custom: CustomTransformCallable | None = None


@dataclass(frozen=True)
class Transformer:
    """A validated transformer variant with its options."""

    name: TransformerName
    options: TransformerOptions = TransformerOptions()


def build_transformer(name: str, options: Mapping[str, object] | None = None) -> Transformer:
    """Validate a transformer name and its options.

    Args:
        name: Transformer identifier.
        options: Raw transformer options from configuration.

    Returns:
        Validated transformer.

    Raises:
        VaultConfigError: If the name or options are invalid.
    """
    normalized = name.lower().strip()
    if normalized not in SUPPORTED_TRANSFORMERS:
        supported = ", ".join(SUPPORTED_TRANSFORMERS)
        raise VaultConfigError(
            f"Unsupported transformer '{name}'. Choose one of: {supported}."
        )
    raw_options = dict(options or {})
    transformer_name = cast(TransformerName, normalized)
    if transformer_name == "redacted":
        parsed = _parse_redacted_options(raw_options)
    elif transformer_name == "regex":
        parsed = _parse_regex_options(raw_options)
    elif transformer_name == "email":
        domain = raw_options.get("domain")
        if domain is not None and (not isinstance(domain, str) or "." not in domain):
            raise VaultConfigError(f"Invalid email domain option {domain!r}: expected a host name.")
        parsed = TransformerOptions(domain=cast(str | None, domain))
    elif transformer_name == "custom":
        path = raw_options.get("path")
        if not isinstance(path, str) or not path:
            raise VaultConfigError("Custom transformer requires transformer_options.path.")
        parsed = TransformerOptions(custom=load_custom_transform(path))
    else:
        parsed = TransformerOptions()
    return Transformer(name=transformer_name, options=parsed)


def transform_value(transformer: Transformer, value: object, seed: int, ordinal: int) -> object:
    """Apply one transformer to one value.

    NULL values stay NULL for every transformer.

    Args:
        transformer: Validated transformer.
        value: Original column value.
        seed: Dump seed.
        ordinal: Zero-based row ordinal within the table.

    Returns:
        Transformed value.

    Raises:
        VaultTransformError: If the value cannot be processed.
    """
    if value is None or transformer.name == "keep":
        return value
    handler = _HANDLERS[transformer.name]
    result: object = value
    for draw in range(_MAX_DRAWS):
        rng = seeded_rng(seed, transformer.name, ordinal, value, draw)
        result = handler(transformer.options, value, rng)
        if transformer.name not in _REDRAW_ON_COLLISION or result != value:
            return result
    return result


def seeded_rng(seed: int, name: str, ordinal: int, value: object, draw: int = 0) -> random.Random:
    """Build a random generator keyed by seed, transformer, ordinal, and value."""
    message = f"{name}\x1f{ordinal}\x1f{draw}\x1f{type(value).__name__}\x1f{value!r}"
    digest = hmac.new(str(seed).encode("utf-8"), message.encode("utf-8"), hashlib.sha256)
    return random.Random(int.from_bytes(digest.digest(), "big"))


def list_transformers() -> list[tuple[str, str]]:
    """Return transformer names with descriptions for CLI/API usage."""
    return [(name, TRANSFORMER_DESCRIPTIONS[name]) for name in SUPPORTED_TRANSFORMERS]


def _parse_redacted_options(raw_options: Mapping[str, object]) -> TransformerOptions:
    character = raw_options.get("character", "*")
    width = raw_options.get("width", 10)
    prefix = raw_options.get("prefix", 3)
    if not isinstance(character, str) or len(character) != 1:
        raise VaultConfigError(f"Invalid redacted character {character!r}: expected one character.")
    for option_name, option_value in (("width", width), ("prefix", prefix)):
        if not isinstance(option_value, int) or isinstance(option_value, bool) or option_value < 0:
            raise VaultConfigError(
                f"Invalid redacted {option_name} {option_value!r}: expected integer >= 0."
            )
    return TransformerOptions(character=character, width=cast(int, width), prefix=cast(int, prefix))


def _parse_regex_options(raw_options: Mapping[str, object]) -> TransformerOptions:
    pattern = raw_options.get("pattern")
    replacement = raw_options.get("replacement", "")
    if not isinstance(pattern, str) or not pattern:
        raise VaultConfigError("Regex transformer requires a non-empty transformer_options.pattern.")
    if not isinstance(replacement, str):
        raise VaultConfigError(f"Invalid regex replacement {replacement!r}: expected string.")
    try:
        compiled = re.compile(pattern)
    except re.error as error:
        raise VaultConfigError(f"Invalid regex pattern {pattern!r}: {error}.") from error
    return TransformerOptions(pattern=compiled, replacement=replacement)


def _require_string(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise VaultTransformError(
            f"Transformer '{name}' expects text values, got {type(value).__name__}."
        )
    return value


def _random_value(options: TransformerOptions, value: object, rng: random.Random) -> object:
    if isinstance(value, bool):
        return rng.choice((True, False))
    if isinstance(value, int):
        return _random_int_like(value, rng)
    if isinstance(value, float):
        magnitude = max(abs(value), 1.0)
        return round(rng.uniform(0.0, magnitude * 2), 6) * (-1 if value < 0 else 1)
    if isinstance(value, bytes):
        return rng.randbytes(len(value))
    if isinstance(value, str):
        if value and not any(_is_randomizable(character) for character in value):
            raise VaultTransformError(
                f"Transformer 'random' cannot anonymize a {len(value)}-character value "
                "without letters or digits. Use 'redacted' for this column."
            )
        return "".join(_random_character(character, rng) for character in value)
    raise VaultTransformError(
        f"Transformer 'random' cannot process values of type {type(value).__name__}."
    )


def _is_randomizable(character: str) -> bool:
    return character.isdigit() or character.isalpha()


def _random_character(character: str, rng: random.Random) -> str:
    if character.isdigit():
        return str(rng.randint(0, 9))
    if character.isupper():
        return chr(rng.randint(ord("A"), ord("Z")))
    if character.isalpha():
        # non-ASCII and caseless letters map onto ASCII lowercase
        return chr(rng.randint(ord("a"), ord("z")))
    return character


def _random_int_like(value: int, rng: random.Random) -> int:
    digit_count = len(str(abs(value)))
    low = 10 ** (digit_count - 1) if digit_count > 1 else 0
    generated = rng.randint(low, 10**digit_count - 1)
    return -generated if value < 0 else generated


def _first_name(options: TransformerOptions, value: object, rng: random.Random) -> object:
    original = _require_string("first-name", value)
    candidates = [name for name in FIRST_NAMES if name.lower() != original.lower()]
    return rng.choice(candidates)


def _email(options: TransformerOptions, value: object, rng: random.Random) -> object:
    _require_string("email", value)
    first = rng.choice(FIRST_NAMES).lower()
    last = rng.choice(LAST_NAMES).lower()
    domain = options.domain or rng.choice(EMAIL_DOMAINS)
    return f"{first}.{last}{rng.randint(1, 999)}@{domain}"


def _keep_first_char(options: TransformerOptions, value: object, rng: random.Random) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        first_digit = int(str(abs(value))[0])
        return -first_digit if value < 0 else first_digit
    return _require_string("keep-first-char", value)[:1]


def _phone_number(options: TransformerOptions, value: object, rng: random.Random) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        return _random_int_like(value, rng)
    original = _require_string("phone-number", value)
    if not any(character.isdigit() for character in original):
        raise VaultTransformError(
            f"Transformer 'phone-number' cannot parse {len(original)}-character value "
            "without digits."
        )
    return "".join(
        str(rng.randint(0, 9)) if character.isdigit() else character for character in original
    )


def _credit_card(options: TransformerOptions, value: object, rng: random.Random) -> object:
    is_int = isinstance(value, int) and not isinstance(value, bool)
    original = str(value) if is_int else _require_string("credit-card", value)
    digit_count = sum(1 for character in original if character.isdigit())
    if not _MIN_CARD_DIGITS <= digit_count <= _MAX_CARD_DIGITS:
        raise VaultTransformError(
            f"Transformer 'credit-card' expects {_MIN_CARD_DIGITS}-{_MAX_CARD_DIGITS} digits, "
            f"got {digit_count}."
        )
    body = [rng.randint(1, 9)] + [rng.randint(0, 9) for _ in range(digit_count - 2)]
    digits = body + [_luhn_check_digit(body)]
    if is_int:
        return int("".join(str(digit) for digit in digits))
    generated = iter(digits)
    return "".join(
        str(next(generated)) if character.isdigit() else character for character in original
    )


def _luhn_check_digit(body: list[int]) -> int:
    total = 0
    for index, digit in enumerate(reversed(body)):
        if index % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return (10 - total % 10) % 10


def _redacted(options: TransformerOptions, value: object, rng: random.Random) -> object:
    original = _require_string("redacted", value)
    # a value no longer than the prefix would otherwise survive whole
    kept = original[: options.prefix] if len(original) > options.prefix else ""
    return kept + options.character * options.width


def _regex(options: TransformerOptions, value: object, rng: random.Random) -> object:
    original = _require_string("regex", value)
    if options.pattern is None:
        raise VaultTransformError("Transformer 'regex' has no compiled pattern.")
    return options.pattern.sub(options.replacement, original)


def _custom(options: TransformerOptions, value: object, rng: random.Random) -> object:
    if options.custom is None:
        raise VaultTransformError("Transformer 'custom' has no loaded callable.")
    try:
        return options.custom(value, rng)
    except VaultTransformError:
        raise
    except Exception as error:
        raise VaultTransformError(f"Custom transformer failed: {error}.") from error


_HANDLERS: dict[TransformerName, Callable[[TransformerOptions, object, random.Random], object]] = {
    "random": _random_value,
    "first-name": _first_name,
    "email": _email,
    "keep-first-char": _keep_first_char,
    "phone-number": _phone_number,
    "credit-card": _credit_card,
    "redacted": _redacted,
    "regex": _regex,
    "custom": _custom,
}
