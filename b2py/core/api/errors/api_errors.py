"""B2 API error codes and error payload parsing."""
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


class APIErrorCodes:
    """B2 API error codes."""

    EXPIRED_AUTH_TOKEN = 'expired_auth_token'
    BAD_AUTH_TOKEN = 'bad_auth_token'
    UNAUTHORIZED = 'unauthorized'
    BAD_REQUEST = 'bad_request'
    NOT_FOUND = 'not_found'
    SERVICE_UNAVAILABLE = 'service_unavailable'
    UNKNOWN = 'unknown'

    DESCRIPTIONS: Dict[str, str] = {
        EXPIRED_AUTH_TOKEN: 'The auth token used has expired. Call b2_authorize_account to get a new one.',
        BAD_AUTH_TOKEN: 'The auth token used is not valid.',
        UNAUTHORIZED: 'The application key is bad or does not allow this request.',
        BAD_REQUEST: 'The request had the wrong fields or illegal values.',
        NOT_FOUND: 'The requested file or bucket was not found.',
        SERVICE_UNAVAILABLE: 'The service is temporarily unavailable.',
    }

    @classmethod
    def get_message(cls, code: str) -> str:
        """Gets a description for an error code."""
        return cls.DESCRIPTIONS.get(code, f"Unknown error: {code}")


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error body: {code, message, status}."""
    code: str
    message: str
    status: int

    @classmethod
    def from_payload(cls, payload: Any, status: int) -> 'ErrorResponse':
        """
        Build from a decoded response body.

        Args:
            payload: Decoded JSON body, raw text, or None
            status: HTTP status of the response

        Returns:
            ErrorResponse; bodies without a code become 'unknown', and a
            code without a message gets the code's description
        """
        if isinstance(payload, dict) and 'code' in payload:
            code = str(payload['code'])
            return cls(
                code=code,
                message=str(payload.get('message') or APIErrorCodes.get_message(code)),
                status=int(payload.get('status', status))
            )

        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode('utf-8', errors='replace')

        message = payload if isinstance(payload, str) else ''
        return cls(code=APIErrorCodes.UNKNOWN, message=message or f"HTTP {status}", status=status)

    @classmethod
    def from_text(cls, text: str, status: int) -> 'ErrorResponse':
        """Parse an error body that has not been decoded yet."""
        payload: Optional[Any]
        try:
            payload = json.loads(text) if text else None
        except json.JSONDecodeError:
            payload = text
        return cls.from_payload(payload, status)
