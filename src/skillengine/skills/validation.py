"""Field checks for model-provided arguments.  The declared schema is never trusted."""

import math
import re
from datetime import datetime
from typing import (
    Any,
    Mapping,
)

from skillengine.core.errors import SkillArgumentError

_NON_DIGITS = re.compile(r"\D+")


def require_text(args: Mapping[str, Any], key: str) -> str:
    """Non-empty string argument."""
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SkillArgumentError(f"'{key}' é obrigatório")
    return value.strip()


def optional_text(args: Mapping[str, Any], key: str, default: str = "") -> str:
    value = args.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise SkillArgumentError(f"'{key}' deve ser texto")
    return value.strip()


def require_number(args: Mapping[str, Any], key: str, minimum: float | None = None) -> float:
    """
    Finite numeric argument.  Numeric strings such as ``"97,90"`` are accepted since models
    sometimes quote numbers.
    """
    value = args.get(key)
    if isinstance(value, bool) or value is None:
        raise SkillArgumentError(f"'{key}' deve ser numérico")
    if isinstance(value, str):
        try:
            value = float(value.strip().replace(",", "."))
        except ValueError as exc:
            raise SkillArgumentError(f"'{key}' deve ser numérico") from exc
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        raise SkillArgumentError(f"'{key}' deve ser numérico")
    if minimum is not None and value < minimum:
        raise SkillArgumentError(f"'{key}' deve ser maior ou igual a {minimum:g}")
    return float(value)


def normalize_phone(raw: str) -> str:
    """Digits-only phone with 10 to 15 digits."""
    digits = _NON_DIGITS.sub("", raw or "")
    if not 10 <= len(digits) <= 15:
        raise SkillArgumentError(f"telefone inválido: '{raw}'")
    return digits


def parse_datetime(raw: str, key: str = "datetime") -> datetime:
    """ISO 8601 timestamp; a trailing ``Z`` is accepted."""
    try:
        return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError) as exc:
        raise SkillArgumentError(f"'{key}' deve estar no formato ISO 8601") from exc


def format_brl(value: float) -> str:
    """``R$ 1234.50`` style price."""
    return f"R$ {value:.2f}"
