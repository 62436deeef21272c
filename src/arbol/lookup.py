"""Cliente del servicio externo de árbol genealógico.

English:
    Async client for the external family-tree lookup API. Maps every
    transport or payload problem onto ``UpstreamNotFound`` /
    ``UpstreamFailure``. Retries are opt-in (``max_attempts``) and only cover
    transport errors.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from . import __version__
from .errors import UpstreamFailure, UpstreamNotFound
from .models import Person
from .normalize import normalize_principal, normalize_record
from .schemas import parse_envelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupResult:
    """Titular y familiares normalizados. / Normalized principal and relatives."""

    principal: Person
    relatives: Tuple[Person, ...]
    quantity: Optional[int] = None


def build_client(timeout_seconds: float = 30.0) -> httpx.AsyncClient:
    """Construye un cliente HTTP con timeout global.

    English: Build an HTTP client with a global timeout.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        headers={"User-Agent": f"ArbolEngine/{__version__}"},
    )


def _normalize_relatives(entries: Sequence[Any]) -> Tuple[Person, ...]:
    """Normaliza familiares; descarta entradas que no son objetos.

    English: Normalize relatives, skipping entries that are not objects.
    """
    relatives: List[Person] = []
    for index, raw in enumerate(entries):
        if not isinstance(raw, Mapping):
            logger.warning("lookup_relative_skipped index=%s type=%s", index, type(raw).__name__)
            continue
        relatives.append(normalize_record(raw))
    return tuple(relatives)


class LookupClient:
    """Consulta el árbol genealógico por DNI.

    English: Fetch the family tree for a document id.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        max_attempts: int = 1,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self._client = client

    async def fetch(self, dni: str) -> LookupResult:
        """Obtiene y normaliza el árbol del DNI.

        Raises:
            UpstreamNotFound: El servicio no tiene datos para el DNI.
            UpstreamFailure: Error de red, timeout o respuesta inválida.

        English:
            Fetch and normalize the tree for ``dni``.
        """
        response = await self._get_with_retry(dni)

        if response.status_code == 404:
            raise UpstreamNotFound()
        if response.status_code >= 400:
            logger.warning("lookup_http_error status_code=%s", response.status_code)
            raise UpstreamFailure()

        try:
            envelope = parse_envelope(response.content)
        except ValueError as exc:
            logger.warning("lookup_payload_invalid error=%s", exc)
            raise UpstreamFailure() from exc

        if not envelope.has_data:
            logger.info("lookup_no_data message=%s", envelope.message)
            raise UpstreamNotFound()

        result = envelope.result
        principal = normalize_principal(result.person)
        relatives = _normalize_relatives(result.coincidences or ())
        logger.info(
            "lookup_found relatives=%s quantity=%s",
            len(relatives),
            result.quantity,
        )
        return LookupResult(principal=principal, relatives=relatives, quantity=result.quantity)

    async def _get_with_retry(self, dni: str) -> httpx.Response:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._get(dni)
        except httpx.TimeoutException as exc:
            logger.warning("lookup_timeout error=%s", exc)
            raise UpstreamFailure() from exc
        except httpx.HTTPError as exc:
            logger.warning("lookup_request_error error=%s", exc)
            raise UpstreamFailure() from exc
        raise UpstreamFailure()

    async def _get(self, dni: str) -> httpx.Response:
        start = time.monotonic()
        if self._client is not None:
            response = await self._client.get(self.base_url, params={"dni": dni})
        else:
            async with build_client(self.timeout_seconds) as client:
                response = await client.get(self.base_url, params={"dni": dni})
        logger.info(
            "lookup_response status_code=%s elapsed_seconds=%s",
            response.status_code,
            round(time.monotonic() - start, 3),
        )
        return response
