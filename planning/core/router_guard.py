from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request

from planning.core.errors import AuthorizationError, NotFoundError, PlanningError, ValidationError
from planning.services.tenant_scope_service import CallerContext


def require_auth_user(request: Request) -> CallerContext:
    caller = getattr(request.state, 'caller', None)
    if not isinstance(caller, CallerContext) or int(caller.user_id or 0) <= 0:
        raise HTTPException(status_code=401, detail='Unauthorized')
    return caller


def require_admin_user(request: Request) -> CallerContext:
    caller = require_auth_user(request)
    if not caller.is_admin:
        raise HTTPException(status_code=403, detail='Forbidden')
    return caller


def raise_http_error(exc: PlanningError) -> NoReturn:
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, AuthorizationError):
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc
