"""
Async authentication service.

Handles B2 account authorization and reauthorization.
"""
import asyncio
import base64
import getpass
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, TYPE_CHECKING

from ..exceptions import AuthError
from ..logging import get_logger
from ..session import SessionData

if TYPE_CHECKING:
    from .async_client import AsyncAPIClient


@dataclass
class AuthResult:
    """Authorization result parsed from b2_authorize_account."""
    account_id: str
    authorization_token: str
    api_url: str
    download_url: str
    recommended_part_size: int
    absolute_minimum_part_size: int
    s3_api_url: str = ''
    bucket_id: Optional[str] = None
    bucket_name: Optional[str] = None
    name_prefix: Optional[str] = None
    capabilities: List[str] = field(default_factory=list)
    application_key_expiration_timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthResult':
        """
        Parse the authorization response body.

        Args:
            data: Decoded JSON body

        Raises:
            AuthError: If required fields are missing
        """
        try:
            storage = data['apiInfo']['storageApi']
            return cls(
                account_id=data['accountId'],
                authorization_token=data['authorizationToken'],
                api_url=storage['apiUrl'],
                download_url=storage['downloadUrl'],
                recommended_part_size=int(storage['recommendedPartSize']),
                absolute_minimum_part_size=int(storage['absoluteMinimumPartSize']),
                s3_api_url=storage.get('s3ApiUrl', ''),
                bucket_id=storage.get('bucketId'),
                bucket_name=storage.get('bucketName'),
                name_prefix=storage.get('namePrefix'),
                capabilities=list(storage.get('capabilities') or []),
                application_key_expiration_timestamp=data.get('applicationKeyExpirationTimestamp'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError(f"Malformed authorization response: missing {e}")


def basic_auth_header(key_id: str, key: str) -> str:
    """Authorization header value for b2_authorize_account."""
    token = base64.b64encode(f"{key_id}:{key}".encode('utf-8')).decode('ascii')
    return f"Basic {token}"


class CredentialsProvider(Protocol):
    """Source of an application key when none is stored."""

    async def get_credentials(self) -> Tuple[str, str]:
        """Return (key_id, key)."""
        ...


class StaticCredentials:
    """Credentials known up front (tests, scripts)."""

    def __init__(self, key_id: str, key: str):
        self._key_id = key_id
        self._key = key

    async def get_credentials(self) -> Tuple[str, str]:
        return self._key_id, self._key


class InteractiveCredentials:
    """
    Reads credentials from the environment, prompting for whatever is missing.

    Environment variables: B2_APPLICATION_KEY_ID, B2_APPLICATION_KEY.
    """

    KEY_ID_ENV = 'B2_APPLICATION_KEY_ID'
    KEY_ENV = 'B2_APPLICATION_KEY'

    async def get_credentials(self) -> Tuple[str, str]:
        loop = asyncio.get_running_loop()

        key_id = os.environ.get(self.KEY_ID_ENV, '').strip()
        key = os.environ.get(self.KEY_ENV, '').strip()

        # blocking input runs in the default executor
        if not key_id:
            key_id = await loop.run_in_executor(None, input, "Backblaze application key ID: ")
        if not key:
            key = await loop.run_in_executor(None, getpass.getpass, "Backblaze application key: ")

        return key_id.strip(), key.strip()


class AsyncAuthService:
    """
    Asynchronous authorization service.

    Owns the authorization exchange for a session. Every success
    overwrites the session's token, URLs and part sizes in place.
    """

    def __init__(
        self,
        client: 'AsyncAPIClient',
        credentials: Optional[CredentialsProvider] = None
    ):
        """
        Initialize auth service.

        Args:
            client: Async API client (provides the HTTP session and config)
            credentials: Where to get a key when none is stored
        """
        self._client = client
        self._credentials = credentials or InteractiveCredentials()
        self._logger = get_logger('b2py.auth')

    @property
    def session(self) -> SessionData:
        return self._client.session

    async def authorize(self, key_id: str, key: str) -> AuthResult:
        """
        Authorize an application key and store the result in the session.

        Args:
            key_id: Application key ID
            key: Application key

        Returns:
            AuthResult with the account's URLs and token

        Raises:
            AuthError: If the endpoint returns a non-success status
        """
        url = self._client.config.authorize_url
        headers = {'Authorization': basic_auth_header(key_id, key)}

        self._logger.debug(f"Authorizing key {key_id} at {url}")
        response = await self._client.send('GET', url, headers=headers)

        if not response.ok:
            error = response.error()
            self._logger.error(f"Authorization failed: {error.code} ({error.status})")
            raise AuthError(error.message, code=error.code, status=error.status)

        result = AuthResult.from_dict(response.json())

        self.session.set_credentials(key_id, key)
        self.session.apply_authorization(result)

        self._logger.info(f"Authorized account {result.account_id}")
        return result

    async def reauthorize(self) -> AuthResult:
        """
        Repeat the authorization with the stored key.

        Raises:
            AuthError: If no key is stored or the endpoint rejects it
        """
        if not self.session.has_credentials():
            raise AuthError("No stored application key to reauthorize with")

        self._logger.info("Reauthorizing with stored application key")
        return await self.authorize(self.session.key_id, self.session.key)

    async def authorize_interactive(self) -> AuthResult:
        """Ask the credentials provider for a key and authorize it."""
        key_id, key = await self._credentials.get_credentials()
        return await self.authorize(key_id, key)

    async def ensure_authorized(self) -> None:
        """
        Make sure the session carries a usable authorization.

        Prompts for credentials when no key is stored; authorizes the
        stored key when no token is present; otherwise does nothing.
        """
        if not self.session.has_credentials():
            await self.authorize_interactive()
        elif not self.session.is_authorized():
            await self.reauthorize()
