"""Validación configurable del DNI de entrada.

English:
    Configurable validation of the inbound document id. Strict mode requires
    exactly ``length`` digits; loose mode only requires a short alphanumeric
    token.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .errors import InputValidationError

_LOOSE_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")


@dataclass(frozen=True)
class DniValidator:
    """Validador de DNI. / Document id validator."""

    strict: bool = True
    length: int = 8

    def __call__(self, value: Any) -> str:
        return self.validate(value)

    def validate(self, value: Any) -> str:
        """Devuelve el DNI limpio o lanza ``InputValidationError``.

        English: Return the cleaned id or raise ``InputValidationError``.
        """
        cleaned = "" if value is None else str(value).strip()
        if not cleaned:
            raise InputValidationError("DNI requerido")
        if self.strict:
            if len(cleaned) != self.length or not (cleaned.isascii() and cleaned.isdigit()):
                raise InputValidationError(f"El DNI debe tener {self.length} dígitos")
            return cleaned
        if not _LOOSE_PATTERN.fullmatch(cleaned):
            raise InputValidationError("DNI inválido")
        return cleaned
