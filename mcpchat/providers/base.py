"""
MCPChat Provider Base - model client interface and the Gemini implementation.

A model client takes an ordered list of turns plus a tool catalog, sends
them to the model in one request, and returns the first candidate.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from mcpchat.errors import ModelAPIError
from mcpchat.providers.schema import (
    Candidate,
    Content,
    FunctionDeclaration,
    GenerateResponse,
    build_request_body,
)
from mcpchat.validation.config import Config

logger = logging.getLogger(__name__)


class ModelClient(ABC):
    """
    Abstract base class for function-calling model clients.

    Example:
        >>> class EchoClient(ModelClient):
        ...     provider_name = "echo"
        ...     def generate(self, turns, tools):
        ...         return Candidate(content=turns[-1])
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def generate(
        self,
        turns: Sequence[Content],
        tools: Sequence[FunctionDeclaration],
    ) -> Candidate:
        """
        Generate one answer for the conversation.

        Args:
            turns: The whole conversation, oldest turn first.
            tools: Function declarations the model may call.

        Returns:
            The first candidate of the response.

        Raises:
            ModelAPIError: On transport failure, an unparseable body, or
                zero candidates.
        """
        pass


class GeminiClient(ModelClient):
    """Gemini ``generateContent`` over HTTPS with a bearer credential."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        verify_tls: bool = True,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Full URL of the generate endpoint.
            api_key: Bearer credential.
            verify_tls: Validate server certificates. Off is insecure.
            timeout: Seconds allowed for the whole round trip.
            transport: Optional httpx transport, used by tests.
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.verify_tls = verify_tls
        self.timeout = timeout
        self._transport = transport

        if not verify_tls:
            logger.warning(
                "TLS certificate verification is DISABLED for %s; "
                "responses from this endpoint cannot be trusted",
                endpoint,
            )

    @classmethod
    def from_config(cls, config: Config) -> "GeminiClient":
        model_config = config.merged.model
        return cls(
            endpoint=config.get_endpoint() or "",
            api_key=config.get_api_key() or "",
            verify_tls=model_config.verify_tls,
            timeout=model_config.timeout,
        )

    @property
    def provider_name(self) -> str:
        return "gemini"

    def generate(
        self,
        turns: Sequence[Content],
        tools: Sequence[FunctionDeclaration],
    ) -> Candidate:
        body = build_request_body(list(turns), list(tools))

        try:
            with httpx.Client(
                verify=self.verify_tls,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = client.post(
                    self.endpoint,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as exc:
            raise ModelAPIError(f"request timed out after {self.timeout}s: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ModelAPIError(f"request failed: {exc}") from exc

        logger.debug("Model responded with HTTP %s", response.status_code)

        if response.status_code >= 400:
            raise ModelAPIError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ModelAPIError(f"failed to parse response: {exc}, body: {response.text}") from exc

        if not isinstance(data, dict):
            raise ModelAPIError(f"failed to parse response: expected an object, body: {response.text}")

        try:
            parsed = GenerateResponse(**data)
        except ValidationError as exc:
            raise ModelAPIError(f"failed to parse response: {exc}") from exc

        if not parsed.candidates:
            raise ModelAPIError("no response from model (zero candidates)")

        return parsed.candidates[0]
