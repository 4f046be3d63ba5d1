"""
HTTP transport for the remote OKR store.

One async client per process; resource modules build on `ApiClient.request`.
The transport never retries. Failures are mapped onto the okrtree error
taxonomy so callers only ever handle `OkrError` subclasses.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from okrtree.constants import get_api_base_url, get_request_timeout
from okrtree.exceptions import AuthenticationError, NotFoundError, TransportError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiClient:
    """
    Thin async wrapper over httpx with bearer auth and error categorization.

    Args:
        base_url: Root URL of the REST API. Defaults to the configured value.
        token_provider: Returns the current bearer token or None.
        timeout: Request timeout in seconds. Defaults to the configured value.
        transport: Optional httpx transport (used by tests to fake the store).
        on_unauthorized: Called when the store rejects the credential.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self.base_url = base_url or get_api_base_url()
        self.token_provider = token_provider
        self.timeout = timeout if timeout is not None else get_request_timeout()
        self.on_unauthorized = on_unauthorized
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Perform a request and return the decoded body.

        Returns:
            Parsed JSON, raw text for non-JSON bodies, or None for empty bodies.

        Raises:
            TransportError: Network failure, server error or unreadable body.
            AuthenticationError: Credential missing or rejected.
            NotFoundError: The referenced resource does not exist.
        """
        headers = self._auth_headers() if authenticated else {}
        logger.debug("%s %s", method, path)
        try:
            response = await self.client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        status = response.status_code
        if status in (401, 403):
            if self.on_unauthorized is not None:
                self.on_unauthorized()
            raise AuthenticationError(_error_message(response), status_code=status)

        if status == 404:
            raise NotFoundError(_error_message(response))

        if status >= 400:
            raise TransportError(_error_message(response), status_code=status)

        if not response.content:
            return None

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return response.text

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("Invalid response format from API") from exc


def _error_message(response: httpx.Response) -> str:
    """Prefer the store's own message, fall back to the status line."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return str(message)
    return f"API error: {response.status_code} {response.reason_phrase}".strip()


def parse_model(model: Type[ModelT], data: Any) -> ModelT:
    """Validate a response body into a model or raise TransportError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise TransportError(f"Malformed {model.__name__} in response: {exc}") from exc


def parse_model_list(model: Type[ModelT], data: Any) -> List[ModelT]:
    """
    Validate a list body, skipping null or malformed entries.

    Raises:
        TransportError: If the body is not a list at all.
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise TransportError(f"Expected a list of {model.__name__}, got {type(data).__name__}")

    items: List[ModelT] = []
    for entry in data:
        if entry is None:
            continue
        try:
            items.append(model.model_validate(entry))
        except PydanticValidationError as exc:
            logger.warning("Skipping malformed %s entry: %s", model.__name__, exc)
    return items
