"""Parsing of loosely typed JSON input (numbers, quantities, flags)."""
import re
from decimal import Decimal, InvalidOperation

from marketplace.exceptions import ValidationError

INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
TRUE_STRINGS = {'true'}
FALSE_STRINGS = {'false'}


def parse_decimal(value, field_name: str, rule: str = None) -> Decimal:
    """
    Parse a JSON number or numeric string to Decimal.

    Rules:
    - Booleans are not numbers
    - NaN and infinities are rejected

    Raises:
        ValidationError: with rule (defaults to field_name)
    """
    result = None
    if not isinstance(value, bool):
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            result = None

    if result is None or not result.is_finite():
        raise ValidationError(f'{field_name} must be a finite number, got {value!r}', rule=rule or field_name)
    return result


def parse_int(value, field_name: str, rule: str = None) -> int:
    """
    Parse a whole number: a JSON integer, an integral float (3.0) or a
    string of digits. Fractions are rejected, never truncated.
    """
    if isinstance(value, bool):
        pass
    elif isinstance(value, int):
        return value
    elif isinstance(value, float):
        if value.is_integer():
            return int(value)
    elif isinstance(value, str) and INTEGER_PATTERN.match(value.strip()):
        return int(value.strip())

    raise ValidationError(f'{field_name} must be a whole number, got {value!r}', rule=rule or field_name)


def parse_bool(value, field_name: str) -> bool:
    """Parse a JSON boolean or the strings "true" / "false" (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValidationError(f'{field_name} must be true or false, got {value!r}', rule=field_name)
