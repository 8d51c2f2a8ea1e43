"""
Adapter: CUSIP to ticker resolution via the OpenFIGI mapping API.
"""

import logging
from typing import Optional

import httpx

from dms.domain.portfolio.ports import CusipResolverPort

logger = logging.getLogger(__name__)

OPENFIGI_URL = "https://api.openfigi.com/v3/mapping"
OPENFIGI_BATCH_SIZE = 10
HTTP_TIMEOUT_SECONDS = 15.0


class OpenFigiCusipResolver(CusipResolverPort):
    """Resolves CUSIPs in batches of ten jobs per request.

    A batch that fails (network error or non-2xx status) is skipped; its
    CUSIPs simply stay unresolved.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._http = http_client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-OPENFIGI-APIKEY"] = self._api_key
        return headers

    def _resolve_batch(self, batch: list[str]) -> dict[str, str]:
        jobs = [{"idType": "ID_CUSIP", "idValue": cusip} for cusip in batch]
        response = self._http.post(OPENFIGI_URL, json=jobs, headers=self._headers())
        response.raise_for_status()

        resolved: dict[str, str] = {}
        for cusip, entry in zip(batch, response.json()):
            matches = entry.get("data") or []
            ticker = matches[0].get("ticker") if matches else None
            if ticker:
                resolved[cusip] = ticker
        return resolved

    def resolve(self, cusips: list[str]) -> dict[str, str]:
        result: dict[str, str] = {}
        for start in range(0, len(cusips), OPENFIGI_BATCH_SIZE):
            batch = cusips[start : start + OPENFIGI_BATCH_SIZE]
            try:
                result.update(self._resolve_batch(batch))
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("OpenFIGI batch of %d skipped: %s", len(batch), exc)
        logger.info("Resolved %d of %d CUSIPs", len(result), len(cusips))
        return result
