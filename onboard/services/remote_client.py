"""HTTP client for the remote onboarding endpoints.

Every failure (transport error, timeout, non-2xx status, unparseable
body) surfaces as RemoteUnavailableError. A 404 on a read means "nothing
saved yet" and comes back as None.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from onboard.config import Settings
from onboard.core.exceptions import RemoteUnavailableError
from onboard.schemas.answers import (
    COMPLETED_PHASE,
    AnswerRecord,
    AnswersResponse,
    CompleteRequest,
    SaveAnswerRequest,
    SaveBatchRequest,
    SaveResponse,
    StatusResponse,
)
from onboard.schemas.progress import ProgressPayload

logger = logging.getLogger("onboard.remote")

PROGRESS_PATH = "/users/onboarding-progress"
ANSWERS_PATH = "/users/onboarding"


class RemoteOnboardingClient:
    """Thin typed wrapper over an authenticated httpx.AsyncClient.

    Token attachment is the caller's job: pass a client that already
    carries the auth headers.
    """

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "RemoteOnboardingClient":
        http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            headers=headers,
            timeout=httpx.Timeout(settings.request_timeout_seconds),
            transport=transport,
        )
        return cls(http)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: BaseModel | None = None,
        allow_missing: bool = False,
    ) -> dict[str, Any] | None:
        json = body.model_dump(mode="json", by_alias=True) if body is not None else None
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"{method} {path} failed: {type(e).__name__}: {e}") from e

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            raise RemoteUnavailableError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise RemoteUnavailableError(f"{method} {path} returned {type(data).__name__}, expected object")
        # Some deployments wrap payloads as {"success": ..., "data": {...}}
        if isinstance(data.get("data"), dict):
            data = data["data"]
        return data

    @staticmethod
    def _parse(model: type[BaseModel], data: dict[str, Any], what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RemoteUnavailableError(f"Malformed {what} response: {e.error_count()} errors") from e

    # -- step wizard ---------------------------------------------------------

    async def get_progress(self) -> ProgressPayload | None:
        data = await self._request("GET", PROGRESS_PATH, allow_missing=True)
        if data is None:
            return None
        return self._parse(ProgressPayload, data, "progress")

    async def push_progress(self, payload: ProgressPayload) -> None:
        await self._request("POST", PROGRESS_PATH, body=payload)

    # -- unified question flow -----------------------------------------------

    async def get_answers(self) -> AnswersResponse | None:
        data = await self._request("GET", f"{ANSWERS_PATH}/responses", allow_missing=True)
        if data is None:
            return None
        return self._parse(AnswersResponse, data, "answers")

    async def save_answer(self, question_id: str, record: AnswerRecord, phase: str | None = None) -> SaveResponse:
        body = SaveAnswerRequest(
            question_id=question_id,
            answer=record.value,
            phase=phase,
            answered_at=record.answered_at,
        )
        data = await self._request("POST", f"{ANSWERS_PATH}/response", body=body)
        return self._parse(SaveResponse, data, "save answer")

    async def save_answers(
        self,
        records: dict[str, AnswerRecord],
        phase: str | None = None,
        *,
        is_complete: bool = False,
    ) -> SaveResponse:
        body = SaveBatchRequest(
            responses={qid: r.value for qid, r in records.items()},
            phase=phase,
            is_complete=is_complete,
            answered_at={qid: r.answered_at for qid, r in records.items()},
        )
        data = await self._request("POST", f"{ANSWERS_PATH}/batch", body=body)
        return self._parse(SaveResponse, data, "save batch")

    async def complete_onboarding(self, phase: str = COMPLETED_PHASE) -> SaveResponse:
        data = await self._request("POST", f"{ANSWERS_PATH}/complete", body=CompleteRequest(phase=phase))
        return self._parse(SaveResponse, data, "complete onboarding")

    async def get_status(self) -> StatusResponse:
        data = await self._request("GET", f"{ANSWERS_PATH}/status")
        return self._parse(StatusResponse, data, "status")
