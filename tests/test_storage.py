"""Pruebas de la caché S3 de reportes / S3 report cache tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from arbol.errors import CacheUnavailable
from arbol.storage import NullReportCache, S3ReportCache, build_cache, cache_key


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "HeadObject")


def test_cache_key_format() -> None:
    assert cache_key("12345678", "arbol_pdf") == "12345678_arbol_pdf"


def test_exists_returns_public_url_when_present() -> None:
    s3 = MagicMock()
    cache = S3ReportCache("bucket", public_base_url="https://cdn.example.test/", client=s3)

    url = cache.exists("12345678_arbol_pdf", "application/pdf")

    assert url == "https://cdn.example.test/reportes/12345678_arbol_pdf.pdf"
    s3.head_object.assert_called_once_with(Bucket="bucket", Key="reportes/12345678_arbol_pdf.pdf")


@pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
def test_exists_returns_none_on_miss(code) -> None:
    s3 = MagicMock()
    s3.head_object.side_effect = _client_error(code)

    assert S3ReportCache("bucket", client=s3).exists("k", "image/png") is None


def test_exists_raises_on_access_denied() -> None:
    s3 = MagicMock()
    s3.head_object.side_effect = _client_error("AccessDenied")

    with pytest.raises(CacheUnavailable):
        S3ReportCache("bucket", client=s3).exists("k", "application/pdf")


def test_exists_raises_on_connection_error() -> None:
    s3 = MagicMock()
    s3.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")

    with pytest.raises(CacheUnavailable):
        S3ReportCache("bucket", client=s3).exists("k", "application/pdf")


def test_upload_puts_object_and_returns_presigned_url() -> None:
    s3 = MagicMock()
    s3.generate_presigned_url.return_value = "https://signed.example.test/x"
    cache = S3ReportCache("bucket", prefix="", client=s3, url_expires_seconds=120)

    url = cache.upload("12345678_arbol_png", b"\x89PNG", "image/png")

    assert url == "https://signed.example.test/x"
    s3.put_object.assert_called_once_with(
        Bucket="bucket",
        Key="12345678_arbol_png.png",
        Body=b"\x89PNG",
        ContentType="image/png",
    )
    s3.generate_presigned_url.assert_called_once_with(
        "get_object",
        Params={"Bucket": "bucket", "Key": "12345678_arbol_png.png"},
        ExpiresIn=120,
    )


def test_upload_failure_raises_cache_unavailable() -> None:
    s3 = MagicMock()
    s3.put_object.side_effect = _client_error("InternalError")

    with pytest.raises(CacheUnavailable):
        S3ReportCache("bucket", client=s3).upload("k", b"data", "application/pdf")


def test_null_cache_never_hits() -> None:
    cache = NullReportCache()
    assert cache.exists("k", "application/pdf") is None
    assert cache.upload("k", b"data", "application/pdf") == ""


def test_build_cache_without_bucket_is_disabled(settings) -> None:
    assert isinstance(build_cache(settings), NullReportCache)
