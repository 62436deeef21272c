# Config Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points
#
# Secciones / Sections:
#   - Configuración / Configuration
#   - Lógica principal / Core logic
#   - Integraciones / Integrations

"""Configuración validada del servicio de árbol genealógico.

Validated configuration for the family-tree service. The settings object is
built once and passed explicitly into the service.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import AnyUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .statistics import AGE_BRACKET_PRESETS, AgeBracket, parse_brackets
from .validation import DniValidator

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")


class ArbolSettings(BaseSettings):
    """Variables de entorno y archivo .env del servicio.

    English: Environment variables and .env file for the service.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ARBOL_GENEALOGICO_API_URL: str
    API_BASE_URL: str = ""
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[Path] = None

    LOOKUP_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    LOOKUP_MAX_ATTEMPTS: int = Field(default=1, ge=1, le=5)

    DNI_STRICT: bool = True
    DNI_LENGTH: int = Field(default=8, ge=1, le=20)

    PAGE_CAPACITY: int = Field(default=15, ge=1)
    AGE_BRACKET_PRESET: str = "estandar"
    AGE_BRACKETS: Optional[str] = None

    CACHE_BUCKET: Optional[str] = None
    CACHE_PREFIX: str = "reportes"
    CACHE_PUBLIC_BASE_URL: Optional[str] = None
    CACHE_URL_EXPIRES_SECONDS: int = Field(default=3600, ge=60)
    S3_ENDPOINT_URL: Optional[str] = None
    AWS_REGION: Optional[str] = None

    REPORT_SIGNING_KEY: Optional[str] = None
    CORS_ORIGINS: str = "*"
    API_RATE_LIMIT: int = Field(default=30, ge=1)

    @field_validator("ARBOL_GENEALOGICO_API_URL")
    @classmethod
    def _validate_lookup_url(cls, value: str) -> str:
        """Valida la URL sin cambiar el tipo almacenado."""
        TypeAdapter(AnyUrl).validate_python(value)
        return value

    @field_validator("API_BASE_URL", "CACHE_PUBLIC_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().rstrip("/")

    @field_validator("AGE_BRACKET_PRESET")
    @classmethod
    def _validate_preset(cls, value: str) -> str:
        cleaned = value.strip().lower()
        if cleaned not in AGE_BRACKET_PRESETS:
            raise ValueError(f"Unknown age bracket preset {value!r}; expected one of {sorted(AGE_BRACKET_PRESETS)}")
        return cleaned

    @field_validator("AGE_BRACKETS")
    @classmethod
    def _validate_brackets(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        parse_brackets(value)
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    def age_brackets(self) -> tuple[AgeBracket, ...]:
        """/** Rangos efectivos: explícitos o del preset. / Effective brackets: explicit or preset. **/"""
        if self.AGE_BRACKETS:
            return parse_brackets(self.AGE_BRACKETS)
        return AGE_BRACKET_PRESETS[self.AGE_BRACKET_PRESET]

    def dni_validator(self) -> DniValidator:
        return DniValidator(strict=self.DNI_STRICT, length=self.DNI_LENGTH)

    def cors_origins(self) -> List[str]:
        raw = self.CORS_ORIGINS.strip()
        if raw == "*":
            return ["*"]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    def sensitive_values(self) -> List[str]:
        """Valores que el logging debe redactar. / Values logging must redact."""
        return [value for value in (self.REPORT_SIGNING_KEY,) if value]


def load_config(**overrides: Any) -> ArbolSettings:
    """/** Carga y valida configuración, fallando con detalle. / Load and validate configuration, failing with details. **/"""
    # Seguridad: variables sensibles desde .env y .env.local. / Security: sensitive vars from .env/.env.local.
    load_dotenv(_ENV_PATH, override=False)
    load_dotenv(_ENV_LOCAL_PATH, override=False)
    try:
        return ArbolSettings(**overrides)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
