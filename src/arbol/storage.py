"""Caché de reportes generados en un bucket S3-compatible.

English:
    Generated-report cache on an S3-compatible bucket, keyed by
    ``<dni>_<report_type>``. The existence check and the upload are not
    atomic; two concurrent misses both upload and the last write wins.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import CacheUnavailable

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_EXTENSIONS = {"application/pdf": "pdf", "image/png": "png"}


def cache_key(dni: str, report_type: str) -> str:
    """Clave lógica del artefacto. / Logical artifact key."""
    return f"{dni}_{report_type}"


class ReportCache(Protocol):
    """Contrato del colaborador de almacenamiento. / Storage collaborator contract."""

    def exists(self, key: str, content_type: str) -> Optional[str]:
        ...

    def upload(self, key: str, content: bytes, content_type: str) -> str:
        ...


class NullReportCache:
    """Caché deshabilitada: nunca acierta y no sube nada.

    English: Disabled cache used when no bucket is configured.
    """

    def exists(self, key: str, content_type: str) -> Optional[str]:
        return None

    def upload(self, key: str, content: bytes, content_type: str) -> str:
        return ""


class S3ReportCache:
    """Caché de reportes sobre S3 (boto3).

    English: Report cache backed by S3 via boto3. Returns public URLs when
    ``public_base_url`` is set, presigned GET URLs otherwise.
    """

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "reportes",
        public_base_url: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        url_expires_seconds: int = 3600,
        client: Any = None,
        timeout_seconds: int = 10,
    ) -> None:
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.url_expires_seconds = url_expires_seconds
        self._timeout_seconds = timeout_seconds
        self._s3_client = client or self._build_s3_client(endpoint_url, region_name)

    def object_key(self, key: str, content_type: str) -> str:
        extension = _EXTENSIONS.get(content_type, "bin")
        name = f"{key}.{extension}"
        return f"{self.prefix}/{name}" if self.prefix else name

    def exists(self, key: str, content_type: str) -> Optional[str]:
        """URL del artefacto si ya existe; None si no.

        Raises:
            CacheUnavailable: Error de red o permisos del bucket.
        """
        object_key = self.object_key(key, content_type)
        try:
            self._s3_client.head_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_CODES:
                return None
            raise CacheUnavailable(f"cache_head_failed code={code}") from exc
        except BotoCoreError as exc:
            raise CacheUnavailable(f"cache_head_failed error={exc}") from exc
        return self._url_for(object_key)

    def upload(self, key: str, content: bytes, content_type: str) -> str:
        """Sube (o sobrescribe) el artefacto y devuelve su URL."""
        object_key = self.object_key(key, content_type)
        try:
            self._s3_client.put_object(
                Bucket=self.bucket_name,
                Key=object_key,
                Body=content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise CacheUnavailable(f"cache_upload_failed error={exc}") from exc
        logger.info(
            "cache_uploaded bucket=%s key=%s bytes=%s",
            self.bucket_name,
            object_key,
            len(content),
        )
        return self._url_for(object_key)

    def _url_for(self, object_key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{object_key}"
        try:
            return self._s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": object_key},
                ExpiresIn=self.url_expires_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            raise CacheUnavailable(f"cache_presign_failed error={exc}") from exc

    def _build_s3_client(self, endpoint_url: Optional[str], region_name: Optional[str]) -> Any:
        config = Config(connect_timeout=self._timeout_seconds, read_timeout=self._timeout_seconds)
        return boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region_name,
            config=config,
        )


def build_cache(settings: Any) -> ReportCache:
    """Caché según configuración; deshabilitada si no hay bucket.

    English: Build the cache from settings. A broken configuration degrades
    to the disabled cache instead of blocking report generation.
    """
    if not settings.CACHE_BUCKET:
        return NullReportCache()
    try:
        return S3ReportCache(
            bucket_name=settings.CACHE_BUCKET,
            prefix=settings.CACHE_PREFIX,
            public_base_url=settings.CACHE_PUBLIC_BASE_URL,
            endpoint_url=settings.S3_ENDPOINT_URL,
            region_name=settings.AWS_REGION,
            url_expires_seconds=settings.CACHE_URL_EXPIRES_SECONDS,
        )
    except (BotoCoreError, ValueError) as exc:
        logger.warning("cache_disabled bucket=%s error=%s", settings.CACHE_BUCKET, exc)
        return NullReportCache()
