"""Custom validators and types."""

import re
from typing import Annotated

from pydantic import AfterValidator, BeforeValidator

# "#07f", "#007bff" or a CSS colour keyword such as "red" / "rebeccapurple"
COLOR_PATTERN = re.compile(r"^(#[0-9a-f]{3}|#[0-9a-f]{6}|[a-z]+)$")


def blank_to_none(value: object) -> object:
    """Treat empty or whitespace-only strings as missing."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def validate_color(value: str) -> str:
    """
    Validate and normalize a house colour.

    Accepts formats:
    - #07f
    - #007BFF
    - red

    Returns the lower-cased value with surrounding whitespace removed.
    """
    normalized = value.strip().lower()
    if not COLOR_PATTERN.match(normalized):
        raise ValueError(
            "Invalid colour. Use a hex value (e.g., #007bff) or a colour name (e.g., red)"
        )
    return normalized


# Annotated type for an optional house colour
Color = Annotated[
    str | None,
    BeforeValidator(blank_to_none),
    AfterValidator(lambda v: validate_color(v) if v is not None else None),
]
