"""Pruebas de logging y redacción / Logging and redaction tests."""

from __future__ import annotations

import logging

import structlog

from arbol.logging import REDACTED, SensitiveDataFilter, bind_context, setup_logging


def test_filter_redacts_secret_values() -> None:
    record = logging.LogRecord("arbol", logging.INFO, __file__, 1, "signing key=%s", ("s3cr3t",), None)

    assert SensitiveDataFilter(["s3cr3t"]).filter(record) is True
    assert record.getMessage() == f"signing key={REDACTED}"


def test_filter_is_noop_without_secrets() -> None:
    record = logging.LogRecord("arbol", logging.INFO, __file__, 1, "dni=%s", ("12345678",), None)

    SensitiveDataFilter([]).filter(record)

    assert record.getMessage() == "dni=12345678"


def test_setup_logging_writes_rotating_file(tmp_path) -> None:
    logger = setup_logging("debug", tmp_path / "logs", sensitive_values=["s3cr3t"])
    try:
        logging.getLogger("arbol.test").info("value=%s", "s3cr3t")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = (tmp_path / "logs" / "arbol.log").read_text(encoding="utf-8")
        assert REDACTED in content
        assert "s3cr3t" not in content
        assert logger is not None
    finally:
        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)
        logging.getLogger().setLevel(logging.WARNING)
        structlog.reset_defaults()


def test_bind_context_skips_empty_values() -> None:
    captured = {}

    class Recorder:
        def bind(self, **kwargs):
            captured.update(kwargs)
            return self

    bind_context(Recorder(), dni="12345678", report_type=None, cache_key="12345678_arbol_pdf")

    assert captured == {"dni": "12345678", "cache_key": "12345678_arbol_pdf"}
