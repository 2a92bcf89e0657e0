from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable

from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from planning.config import settings
from planning.db import SessionLocal
from planning.models import Tenant
from planning.services.auth_service import validate_session_token
from planning.services.tenant_scope_service import CallerContext, caller_context, get_or_create_default_tenant

logger = logging.getLogger(__name__)


def get_request_tenant_id(request: Request) -> int | None:
    value = int(getattr(request.state, 'tenant_id', 0) or 0)
    return value if value > 0 else None


def resolve_request_token(request: Request) -> str | None:
    token = request.cookies.get('auth_session')
    if token:
        return token
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        return auth_header.split(' ', 1)[1].strip()
    return None


def _extract_subdomain(host_header: str) -> str:
    host = (host_header or '').strip().lower()
    if not host:
        return ''
    host_without_port = host
    if host_without_port.startswith('['):
        bracket_end = host_without_port.find(']')
        if bracket_end != -1:
            host_without_port = host_without_port[1:bracket_end]
    else:
        host_without_port = host_without_port.split(':', 1)[0]
    try:
        ipaddress.ip_address(host_without_port.strip('[]'))
        return ''
    except ValueError:
        pass
    labels = [label for label in host_without_port.split('.') if label]
    if not labels:
        return ''
    if labels[-1] == 'localhost':
        return labels[0] if len(labels) >= 2 else ''
    tenant_base_domain = (settings.tenant_base_domain or '').strip().lower().lstrip('.')
    if tenant_base_domain and host_without_port.endswith(f'.{tenant_base_domain}'):
        return labels[0]
    if settings.app_env.lower() in {'local', 'dev', 'development', 'test'}:
        return ''
    if len(labels) < 3:
        return ''
    return labels[0]


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    """Resolve the tenant and caller of a request and expose them as ambient context.

    The tenant comes from the host subdomain when there is one, otherwise from
    the session token, otherwise from the development default tenant. A token
    issued for another tenant is rejected.
    """

    def __init__(self, app, *, session_factory: sessionmaker | Callable[[], Session] | None = None):
        super().__init__(app)
        self._session_factory = session_factory or SessionLocal

    async def dispatch(self, request: Request, call_next):
        host = request.headers.get('host', '')
        slug = _extract_subdomain(host)
        session = validate_session_token(resolve_request_token(request))
        session_tenant_id = int((session or {}).get('tenant_id') or 0)

        db: Session = self._session_factory()
        try:
            if slug:
                tenant = db.query(Tenant).filter(Tenant.slug == slug).first()
                if not tenant:
                    return JSONResponse(status_code=404, content={'detail': 'Tenant not found'})
            elif session_tenant_id > 0:
                tenant = db.query(Tenant).filter(Tenant.id == session_tenant_id).first()
                if not tenant:
                    return JSONResponse(status_code=404, content={'detail': 'Tenant not found'})
            else:
                tenant = get_or_create_default_tenant(db)
                logger.info(
                    'tenant_resolution_fallback_default host=%s slug=%s tenant_id=%s',
                    host,
                    settings.dev_default_tenant_slug,
                    tenant.id,
                )
            request.state.tenant_id = int(tenant.id)
            request.state.tenant_slug = str(tenant.slug)
        finally:
            db.close()

        if session_tenant_id > 0 and session_tenant_id != int(request.state.tenant_id):
            logger.warning(
                'tenant_mismatch host=%s request_tenant_id=%s token_tenant_id=%s',
                host,
                request.state.tenant_id,
                session_tenant_id,
            )
            return JSONResponse(status_code=403, content={'detail': 'Tenant mismatch'})

        caller = CallerContext(tenant_id=int(request.state.tenant_id))
        if session:
            caller = CallerContext(
                tenant_id=int(request.state.tenant_id),
                user_id=int(session['user_id']),
                role=str(session['role']),
                trainer_id=session.get('trainer_id'),
            )
        request.state.caller = caller
        with caller_context(caller):
            return await call_next(request)
