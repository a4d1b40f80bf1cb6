"""
Async B2 API client.

Wraps an aiohttp session and exposes the B2 endpoints the client
needs. Every call that uses the account token is routed through the
RequestExecutor, so token expiry never reaches the caller.
"""
import json
from typing import Any, AsyncIterable, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import quote

import aiohttp

from .config import APIConfig
from .async_auth import AsyncAuthService, CredentialsProvider
from .executor import ApiResponse, FunctionOperation, RequestExecutor
from ..logging import get_logger
from ..models import B2File, Bucket, UploadTarget
from ..session import SessionData

Body = Union[bytes, AsyncIterable[bytes], None]


class AsyncAPIClient:
    """
    Asynchronous B2 API client.

    Features:
    - Transparent reauthorization on expired tokens
    - Connection reuse through one aiohttp session
    - Streaming upload and download bodies

    Example:
        >>> async with AsyncAPIClient(APIConfig.default(), session) as client:
        ...     await client.auth.ensure_authorized()
        ...     buckets = await client.list_buckets()
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        session: Optional[SessionData] = None,
        credentials: Optional[CredentialsProvider] = None
    ):
        """
        Initialize async API client.

        Args:
            config: API configuration (uses defaults if not provided)
            session: Account state, mutated in place on reauthorization
            credentials: Source of a key when none is stored
        """
        self._config = config or APIConfig.default()
        self._session_data = session if session is not None else SessionData()
        self._http: Optional[aiohttp.ClientSession] = None
        self._closed = False

        self._auth = AsyncAuthService(self, credentials)
        self._executor = RequestExecutor(self._session_data, self._auth, self._config.retry)

        self._logger = get_logger('b2py.api')

    @property
    def config(self) -> APIConfig:
        return self._config

    @property
    def session(self) -> SessionData:
        """Account state used for every request."""
        return self._session_data

    @property
    def auth(self) -> AsyncAuthService:
        return self._auth

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    async def __aenter__(self) -> 'AsyncAPIClient':
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure the HTTP session is created and open."""
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(**self._config.get_session_kwargs())
        return self._http

    async def close(self):
        """Close client and release resources."""
        self._closed = True
        if self._http and not self._http.closed:
            await self._http.close()
        self._http = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        data: Body = None
    ) -> ApiResponse:
        """
        Perform one HTTP exchange and decode the body.

        Network errors propagate unchanged.
        """
        http = await self._ensure_session()

        self._logger.debug(f"{method} {url}")
        async with http.request(
            method,
            url,
            headers=headers,
            params=params,
            json=json_body,
            data=data
        ) as response:
            text = await response.text()
            return self._to_response(response, text)

    def _to_response(self, response: aiohttp.ClientResponse, text: str) -> ApiResponse:
        payload: Any = None
        if text:
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                payload = None

        self._logger.debug(
            f"Response {response.status}: {text[:300] if len(text) > 300 else text}"
        )
        return ApiResponse(
            status=response.status,
            payload=payload,
            url=str(response.url),
            text=text,
            headers=dict(response.headers)
        )

    def operation(
        self,
        method: str,
        api_name: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> FunctionOperation:
        """
        Build a retry-safe operation for an account-token endpoint.

        The API URL and token are read from the session on every attempt.
        """
        path = self._config.api_path(api_name)

        async def call(session: SessionData) -> ApiResponse:
            return await self.send(
                method,
                session.api_endpoint(path),
                headers={'Authorization': session.auth_token},
                params=params,
                json_body=json_body
            )

        return FunctionOperation(call, api_name)

    async def get(self, api_name: str, **params) -> Dict[str, Any]:
        """GET an API endpoint with query parameters."""
        response = await self._executor.execute(self.operation('GET', api_name, params=params))
        return response.json()

    async def post(self, api_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body to an API endpoint."""
        response = await self._executor.execute(self.operation('POST', api_name, json_body=body))
        return response.json()

    # ------------------------------------------------------------------
    # Buckets and listings
    # ------------------------------------------------------------------

    async def list_buckets(self) -> List[Bucket]:
        """List the account's buckets."""
        result = await self.get('b2_list_buckets', accountId=self._session_data.account_id)
        return [Bucket.from_dict(b) for b in result.get('buckets', [])]

    async def list_file_names(
        self,
        bucket_id: str,
        prefix: Optional[str] = None,
        max_file_count: int = 1000
    ) -> List[B2File]:
        """
        List every file name in a bucket, following pagination.

        Args:
            bucket_id: Bucket to list
            prefix: Only names starting with this prefix
            max_file_count: Page size
        """
        files: List[B2File] = []
        start_name: Optional[str] = None

        while True:
            params: Dict[str, Any] = {'bucketId': bucket_id, 'maxFileCount': max_file_count}
            if prefix:
                params['prefix'] = prefix
            if start_name:
                params['startFileName'] = start_name

            result = await self.get('b2_list_file_names', **params)
            files.extend(B2File.from_dict(f) for f in result.get('files', []))

            start_name = result.get('nextFileName')
            if not start_name:
                return files

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def get_upload_url(self, bucket_id: str) -> UploadTarget:
        """Lease an upload URL for a single-shot upload."""
        result = await self.get('b2_get_upload_url', bucketId=bucket_id)
        return UploadTarget.from_dict(result)

    async def get_upload_part_url(self, file_id: str) -> UploadTarget:
        """Lease an upload URL for the parts of a large file."""
        result = await self.get('b2_get_upload_part_url', fileId=file_id)
        return UploadTarget.from_dict(result)

    async def start_large_file(
        self,
        bucket_id: str,
        file_name: str,
        content_type: str,
        file_info: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Open a large-file session; the result carries its fileId."""
        body: Dict[str, Any] = {
            'bucketId': bucket_id,
            'fileName': file_name,
            'contentType': content_type,
        }
        if file_info:
            body['fileInfo'] = file_info
        return await self.post('b2_start_large_file', body)

    async def finish_large_file(self, file_id: str, part_sha1s: List[str]) -> B2File:
        """Assemble a large file from its parts, in part-number order."""
        result = await self.post('b2_finish_large_file', {
            'fileId': file_id,
            'partSha1Array': list(part_sha1s),
        })
        return B2File.from_dict(result)

    async def cancel_large_file(self, file_id: str) -> Dict[str, Any]:
        """Abandon a large-file session and delete its parts."""
        return await self.post('b2_cancel_large_file', {'fileId': file_id})

    async def upload_file(
        self,
        target: UploadTarget,
        *,
        file_name: str,
        content_type: str,
        content_length: int,
        sha1: str,
        body: Body
    ) -> ApiResponse:
        """
        POST a whole file to a leased upload URL (one attempt).

        The caller wraps this in an operation; a retry needs a new lease.
        """
        headers = {
            'Authorization': target.authorization_token,
            'X-Bz-File-Name': quote(file_name, safe='/'),
            'Content-Type': content_type,
            'Content-Length': str(content_length),
            'X-Bz-Content-Sha1': sha1,
        }
        return await self.send('POST', target.upload_url, headers=headers, data=body)

    async def upload_part(
        self,
        target: UploadTarget,
        *,
        part_number: int,
        content_length: int,
        sha1: str,
        body: Body
    ) -> ApiResponse:
        """POST one part of a large file to a leased part URL (one attempt)."""
        headers = {
            'Authorization': target.authorization_token,
            'X-Bz-Part-Number': str(part_number),
            'Content-Length': str(content_length),
            'X-Bz-Content-Sha1': sha1,
        }
        return await self.send('POST', target.upload_url, headers=headers, data=body)

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def download_url(self, bucket_name: str, file_name: str) -> str:
        """Download-by-name URL for the current session."""
        base = self._session_data.download_url.rstrip('/')
        return f"{base}/file/{bucket_name}/{quote(file_name, safe='/')}"

    async def download_file_by_name(
        self,
        bucket_name: str,
        file_name: str,
        write: Callable[[bytes], Awaitable[Any]],
        progress_callback: Optional[Callable[[int, int], None]] = None,
        chunk_size: int = 64 * 1024
    ) -> int:
        """
        Stream a file's content into `write`.

        Nothing is written unless the response is a success, so the
        request can be replayed after reauthorization.

        Args:
            bucket_name: Bucket the file lives in
            file_name: Name of the file in the bucket
            write: Coroutine function receiving each block
            progress_callback: Optional callback(downloaded_bytes, total_bytes)
            chunk_size: Size of each streamed block

        Returns:
            Number of bytes written
        """
        async def call(session: SessionData) -> ApiResponse:
            http = await self._ensure_session()
            url = self.download_url(bucket_name, file_name)

            self._logger.debug(f"GET {url}")
            async with http.get(url, headers={'Authorization': session.auth_token}) as response:
                if response.status >= 300:
                    return self._to_response(response, await response.text())

                total = response.content_length or 0
                downloaded = 0
                async for block in response.content.iter_chunked(chunk_size):
                    await write(block)
                    downloaded += len(block)
                    if progress_callback:
                        progress_callback(downloaded, total)

                return ApiResponse(
                    status=response.status,
                    payload={'contentLength': downloaded},
                    url=str(response.url),
                    headers=dict(response.headers)
                )

        response = await self._executor.execute(FunctionOperation(call, 'b2_download_file_by_name'))
        return response.json()['contentLength']
