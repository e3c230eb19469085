"""HTTP client for the web backend's analyze and verify-payment endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

import httpx

from resume_optimizer.errors import (
    GenerationError,
    PaymentNotConfiguredError,
    PaymentVerificationError,
)
from resume_optimizer.models.payment import PaymentVerification

logger = logging.getLogger(__name__)


def _error_detail(body: str, default: str) -> str:
    """Pull ``error`` out of a JSON error body, else use the raw text."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body.strip() or default
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return default


class AnalysisAPIClient:
    """Async client for the generation and payment-verification endpoints.

    The analyze endpoint may answer with ``{"feedback": ...}`` JSON or with a
    streamed raw-text body; both are exposed as an async stream of chunks.
    """

    def __init__(
        self,
        base_url: str,
        *,
        analyze_path: str = "/api/analyze",
        verify_payment_path: str = "/api/verify-payment",
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.analyze_path = analyze_path
        self.verify_payment_path = verify_payment_path
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def stream_feedback(
        self,
        resume: str,
        goals: str,
        requirements: str = "",
    ) -> AsyncIterator[str]:
        """POST the inputs and yield the feedback text as it arrives."""
        payload = {"resume": resume, "goals": goals, "requirements": requirements}
        logger.info("Requesting feedback from %s%s", self.base_url, self.analyze_path)
        try:
            async with self._client() as client:
                async with client.stream("POST", self.analyze_path, json=payload) as response:
                    if response.status_code >= 400:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        detail = _error_detail(body, "Failed to analyze resume")
                        raise GenerationError(f"HTTP {response.status_code}: {detail}")

                    content_type = response.headers.get("content-type", "")
                    if content_type.startswith("application/json"):
                        data = json.loads(await response.aread())
                        feedback = data.get("feedback") if isinstance(data, dict) else None
                        if not isinstance(feedback, str):
                            raise GenerationError("JSON response has no feedback text")
                        yield feedback
                        return

                    async for chunk in response.aiter_text():
                        if chunk:
                            yield chunk
        except GenerationError:
            raise
        except (httpx.HTTPError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Feedback stream failed", exc_info=True)
            raise GenerationError(f"Response body is not readable: {e}") from e

    async def verify_payment(
        self,
        *,
        session_id: str | None = None,
        payment_intent_id: str | None = None,
        client_secret: str | None = None,
    ) -> PaymentVerification:
        """Ask the backend whether a checkout session or PaymentIntent is paid."""
        if session_id:
            payload = {"sessionId": session_id}
        elif payment_intent_id:
            payload = {"paymentIntentId": payment_intent_id, "clientSecret": client_secret}
        else:
            raise ValueError("session_id or payment_intent_id is required")

        try:
            async with self._client() as client:
                response = await client.post(self.verify_payment_path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Payment verification request failed", exc_info=True)
            raise PaymentVerificationError(str(e)) from e

        if response.status_code >= 400:
            detail = _error_detail(response.text, "Failed to verify payment")
            if "not configured" in detail.lower():
                raise PaymentNotConfiguredError(detail)
            raise PaymentVerificationError(f"HTTP {response.status_code}: {detail}")

        try:
            return PaymentVerification.model_validate(response.json())
        except ValueError as e:
            logger.error("Unexpected verification response: %s", response.text[:300])
            raise PaymentVerificationError("Malformed verification response") from e
