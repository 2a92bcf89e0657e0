from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging

from planning.config import settings
from planning.models import Role


_KNOWN_ROLES = {role.value for role in Role}
logger = logging.getLogger(__name__)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64url_decode(value: str) -> bytes:
    padding = '=' * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode('ascii'))


def _sign(signing_input: bytes) -> bytes:
    return hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()


def _encode_jwt(payload: dict) -> str:
    header = {'alg': 'HS256', 'typ': 'JWT'}
    header_part = _b64url_encode(json.dumps(header, separators=(',', ':')).encode('utf-8'))
    payload_part = _b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    signature_part = _b64url_encode(_sign(f'{header_part}.{payload_part}'.encode('ascii')))
    return f'{header_part}.{payload_part}.{signature_part}'


def _decode_jwt(token: str) -> dict | None:
    try:
        header_part, payload_part, signature_part = token.split('.')
    except ValueError:
        return None

    expected_signature = _sign(f'{header_part}.{payload_part}'.encode('ascii'))
    try:
        provided_signature = _b64url_decode(signature_part)
    except (ValueError, UnicodeEncodeError):
        return None
    if not hmac.compare_digest(provided_signature, expected_signature):
        return None

    try:
        payload = json.loads(_b64url_decode(payload_part).decode('utf-8'))
    except (ValueError, json.JSONDecodeError, UnicodeDecodeError):
        return None

    if not isinstance(payload, dict):
        return None
    return payload


def issue_session_token(*, user_id: int, role: str, tenant_id: int, trainer_id: int | None = None) -> str:
    """Sign a session token for the identity provider in front of this service.

    Tokens are normally minted by the host application's login flow; this helper
    exists for the dev bootstrap and for tests.
    """
    clean_role = (role or '').strip().lower()
    if clean_role not in _KNOWN_ROLES:
        raise ValueError(f'Unknown role: {role}')
    payload = {
        'sub': int(user_id),
        'role': clean_role,
        'tenant_id': int(tenant_id),
    }
    if trainer_id:
        payload['trainer_id'] = int(trainer_id)
    return _encode_jwt(payload)


def validate_session_token(token: str | None) -> dict | None:
    if not token:
        return None
    payload = _decode_jwt(token)
    if not payload:
        return None

    role = str(payload.get('role') or '').strip().lower()
    user_id = payload.get('sub')
    tenant_id = int(payload.get('tenant_id') or 0)
    if role not in _KNOWN_ROLES or user_id is None or tenant_id <= 0:
        logger.info('session_token_rejected reason=invalid_claims role=%s tenant_id=%s', role, tenant_id)
        return None

    return {
        'user_id': int(user_id),
        'role': role,
        'tenant_id': tenant_id,
        'trainer_id': int(payload.get('trainer_id') or 0) or None,
    }

