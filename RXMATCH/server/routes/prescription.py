from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, HTTPException, status

from RXMATCH.server.database.database import get_catalog_repository
from RXMATCH.server.schemas.prescription import AlternativesRequest, OCRExtraction
from RXMATCH.server.utils.configurations import server_settings
from RXMATCH.server.utils.constants import PRESCRIPTIONS_API_URL
from RXMATCH.server.utils.logger import logger
from RXMATCH.server.utils.services.matching.catalog import CatalogSearch
from RXMATCH.server.utils.services.matching.errors import (
    BatchError,
    BatchTimeoutError,
    EmptyInputError,
    NoValidNamesError,
    SystemicCatalogError,
    describe_batch_error,
)
from RXMATCH.server.utils.services.matching.prescription import PrescriptionMatcher
from RXMATCH.server.utils.services.matching.resolver import MatchResolver

router = APIRouter(prefix=PRESCRIPTIONS_API_URL, tags=["prescriptions"])


###############################################################################
class PrescriptionEndpoint:
    def __init__(
        self,
        *,
        router: APIRouter,
        catalog_provider: Callable[[], CatalogSearch],
        timeout: float,
    ) -> None:
        self.router = router
        self.catalog_provider = catalog_provider
        self.timeout = timeout

        self.router.add_api_route(
            "/match",
            self.match_prescription,
            methods=["POST"],
            status_code=status.HTTP_200_OK,
        )
        self.router.add_api_route(
            "/alternatives",
            self.find_alternatives,
            methods=["POST"],
            status_code=status.HTTP_200_OK,
        )

    # -------------------------------------------------------------------------
    def build_matcher(self) -> PrescriptionMatcher:
        resolver = MatchResolver(self.catalog_provider())
        return PrescriptionMatcher(resolver)

    # -------------------------------------------------------------------------
    def run_batch(self, payload: OCRExtraction) -> dict[str, Any]:
        # runs in a worker thread, the catalog provider may open the database
        matcher = self.build_matcher()
        summary = matcher.process_prescription(
            payload.medicine_names,
            payload.confidence,
            raw_text=payload.raw_text,
            patient_info=payload.patient_info,
        )
        validation = matcher.validate_results(summary)
        return {"result": summary.to_dict(), "validation": validation.to_dict()}

    # -------------------------------------------------------------------------
    def collect_alternatives(self, names: list[str]) -> list[dict[str, Any]]:
        resolver = MatchResolver(self.catalog_provider())
        entries: list[dict[str, Any]] = []
        for name in names:
            alternatives = resolver.find_alternatives(name)
            entries.append(
                {
                    "medicine_name": name,
                    "alternatives": [entry.to_dict() for entry in alternatives],
                    "alternatives_found": bool(alternatives),
                }
            )
        return entries

    # -------------------------------------------------------------------------
    @staticmethod
    def batch_error_status(error: BatchError) -> int:
        if isinstance(error, (EmptyInputError, NoValidNamesError)):
            return status.HTTP_422_UNPROCESSABLE_ENTITY
        if isinstance(error, BatchTimeoutError):
            return status.HTTP_504_GATEWAY_TIMEOUT
        if isinstance(error, SystemicCatalogError):
            return status.HTTP_503_SERVICE_UNAVAILABLE
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    # -------------------------------------------------------------------------
    def batch_http_error(self, error: BatchError) -> HTTPException:
        feedback = describe_batch_error(error)
        detail = feedback.to_dict()
        detail["kind"] = error.kind
        return HTTPException(status_code=self.batch_error_status(error), detail=detail)

    # -------------------------------------------------------------------------
    async def match_prescription(self, payload: OCRExtraction) -> dict[str, Any]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.run_batch, payload),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "Prescription matching exceeded %.1f seconds", self.timeout
            )
            raise self.batch_http_error(
                BatchTimeoutError("Prescription matching timed out")
            ) from exc
        except BatchError as exc:
            logger.warning("Prescription matching failed (%s): %s", exc.kind, exc)
            raise self.batch_http_error(exc) from exc

    # -------------------------------------------------------------------------
    async def find_alternatives(self, payload: AlternativesRequest) -> dict[str, Any]:
        entries = await asyncio.to_thread(
            self.collect_alternatives, list(payload.medicine_names)
        )
        return {"alternatives": entries}


endpoint = PrescriptionEndpoint(
    router=router,
    catalog_provider=get_catalog_repository,
    timeout=server_settings.batch.request_timeout,
)
