"""
Authenticating request executor.

Every API call in b2py is expressed as an operation that can be
attempted more than once. The executor runs it against the current
session, recovers from token expiry by reauthorizing, and turns every
other rejection into an ApiError.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, runtime_checkable

from .config import RetryConfig
from .errors import ErrorResponse
from .retry import RetryStrategy, ReauthorizeOnExpiryStrategy
from ..exceptions import ApiError, AuthExhausted
from ..logging import get_logger
from ..session import SessionData


@dataclass
class ApiResponse:
    """
    Response of a single HTTP exchange.

    Attributes:
        status: HTTP status code
        payload: Decoded JSON body (None for empty or non-JSON bodies)
        url: Requested URL
        text: Raw body text when it was not JSON
        headers: Response headers
    """
    status: int
    payload: Any = None
    url: str = ''
    text: str = ''
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return 200 <= self.status < 300

    def error(self) -> ErrorResponse:
        """Parse the body as a structured error."""
        if self.payload is not None:
            return ErrorResponse.from_payload(self.payload, self.status)
        return ErrorResponse.from_text(self.text, self.status)

    def json(self) -> Dict[str, Any]:
        """Body as a dict (empty dict when there is none)."""
        return self.payload if isinstance(self.payload, dict) else {}


@runtime_checkable
class ApiOperation(Protocol):
    """
    A request that is safe to attempt more than once.

    Implementations must read the token and URLs from the session they
    are given on every attempt, and re-derive any single-use values
    (such as upload URL leases) themselves.
    """

    async def attempt(self, session: SessionData) -> ApiResponse:
        """Perform one attempt of the request."""
        ...


class FunctionOperation:
    """Adapts a coroutine function `fn(session) -> ApiResponse` to ApiOperation."""

    def __init__(self, fn: Callable[[SessionData], Awaitable[ApiResponse]], name: str = ''):
        self._fn = fn
        self.name = name or getattr(fn, '__name__', 'operation')

    async def attempt(self, session: SessionData) -> ApiResponse:
        return await self._fn(session)

    def __repr__(self) -> str:
        return f"FunctionOperation({self.name})"


class Reauthorizer(Protocol):
    """Anything able to refresh the session's token."""

    async def reauthorize(self) -> None:
        ...


class RequestExecutor:
    """
    Runs operations with transparent reauthorization on token expiry.

    Algorithm:
        1. Attempt the operation against the current session.
        2. Return the response if the status is 2xx.
        3. If the error code is a retryable one (expired_auth_token),
           reauthorize and attempt again.
        4. Any other code raises ApiError without retrying.
        5. After `max_auth_attempts` attempts ending in expiry, raise
           AuthExhausted.

    Example:
        >>> executor = RequestExecutor(session, auth_service)
        >>> response = await executor.execute(operation)
    """

    def __init__(
        self,
        session: SessionData,
        authenticator: Reauthorizer,
        config: Optional[RetryConfig] = None,
        strategy: Optional[RetryStrategy] = None
    ):
        """
        Initialize the executor.

        Args:
            session: Session the operations read their token from
            authenticator: Object whose reauthorize() refreshes the session
            config: Retry configuration (5 attempts by default)
            strategy: Retry decision strategy
        """
        self._session = session
        self._auth = authenticator
        self._config = config or RetryConfig()
        self._strategy = strategy or ReauthorizeOnExpiryStrategy(self._config.retry_on_codes)
        self._logger = get_logger('b2py.executor')

    @property
    def session(self) -> SessionData:
        return self._session

    @property
    def max_attempts(self) -> int:
        return self._config.max_auth_attempts

    async def execute(self, operation: ApiOperation) -> ApiResponse:
        """
        Execute an operation until it succeeds or fails for good.

        Args:
            operation: Request to run

        Returns:
            The first successful response

        Raises:
            ApiError: Non-retryable rejection
            AuthExhausted: Token still expired after the last attempt
            AuthError: Reauthorization itself failed
        """
        attempt = 0
        while True:
            attempt += 1
            response = await operation.attempt(self._session)

            if response.ok:
                if attempt > 1:
                    self._logger.debug(f"{operation!r} succeeded on attempt {attempt}")
                return response

            error = response.error()

            if not self._strategy.is_retryable(error.code):
                self._logger.debug(
                    f"{operation!r} rejected: {error.code} ({response.status}) {error.message}"
                )
                raise ApiError(error.code, error.message, response.url, response.status)

            if not self._strategy.should_retry(error.code, attempt, self.max_attempts):
                self._logger.error(
                    f"Authorization token still rejected after {attempt} attempts: {response.url}"
                )
                raise AuthExhausted(attempt, response.url)

            self._logger.warning(
                f"Authorization token expired ({error.code}), reauthorizing "
                f"(attempt {attempt}/{self.max_attempts})"
            )
            await self._auth.reauthorize()
