"""Esquemas Pydantic de la respuesta del servicio de árbol genealógico.

Pydantic schemas for the upstream family-tree lookup response:
``{message, result: {person, quantity, coincidences}}``. Person records stay
as raw mappings here; ``arbol.normalize`` turns them into ``Person``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

FOUND_MESSAGE = "found data"


class LookupResultSchema(BaseModel):
    """Bloque ``result`` del servicio externo.

    English: Upstream ``result`` block.
    """

    model_config = ConfigDict(extra="allow")

    person: Optional[Dict[str, Any]] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    coincidences: Optional[List[Any]] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _lenient_quantity(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("lookup_quantity_invalid value=%s", value)
            return None


class LookupEnvelopeSchema(BaseModel):
    """Respuesta completa del servicio externo. / Full upstream response."""

    model_config = ConfigDict(extra="allow")

    message: Optional[str] = None
    result: Optional[LookupResultSchema] = None

    @property
    def has_data(self) -> bool:
        """True si el servicio reporta "found data" con titular y familiares.

        English: True only when upstream says "found data" and ships both the
        principal and the (possibly empty) relative list.
        """
        if (self.message or "").strip().lower() != FOUND_MESSAGE:
            return False
        if self.result is None or not self.result.person:
            return False
        return self.result.coincidences is not None


def parse_envelope(data: dict | bytes | str) -> LookupEnvelopeSchema:
    """Parsea y valida la respuesta; lanza ``ValueError`` si es inválida.

    English: Parse and validate the response; raises ``ValueError`` on
    malformed JSON or shape.
    """
    payload: Any = data
    if isinstance(data, (bytes, str)):
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValueError("Lookup payload is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValueError("Lookup payload must be a JSON object")
    try:
        return LookupEnvelopeSchema.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Lookup payload validation failed: {exc}") from exc
