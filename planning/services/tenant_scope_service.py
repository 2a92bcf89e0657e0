from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass

from sqlalchemy.orm import Session

from planning.config import settings
from planning.core.errors import AuthorizationError
from planning.models import Role, Tenant


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    tenant_id: int
    user_id: int = 0
    role: str = ''
    trainer_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_trainer(self) -> bool:
        return self.role == Role.TRAINER.value and int(self.trainer_id or 0) > 0

    def owns_trainer(self, trainer_id: int | None) -> bool:
        return self.is_trainer and int(self.trainer_id or 0) == int(trainer_id or 0)


_current_caller: ContextVar[CallerContext | None] = ContextVar('current_caller', default=None)


def set_current_caller(caller: CallerContext | None) -> Token:
    if caller is not None and int(caller.tenant_id or 0) <= 0:
        caller = None
    return _current_caller.set(caller)


def reset_current_caller(token: Token) -> None:
    _current_caller.reset(token)


def get_current_caller() -> CallerContext | None:
    return _current_caller.get()


def get_current_tenant_id() -> int | None:
    caller = _current_caller.get()
    if caller is None:
        return None
    clean = int(caller.tenant_id or 0)
    return clean if clean > 0 else None


@contextmanager
def caller_context(caller: CallerContext | None):
    token = set_current_caller(caller)
    try:
        yield caller
    finally:
        reset_current_caller(token)


def require_caller(*, operation: str) -> CallerContext:
    caller = _current_caller.get()
    if caller is None or int(caller.user_id or 0) <= 0:
        logger.warning('caller_context_missing operation=%s', operation)
        raise AuthorizationError('Tenant and caller context are required')
    return caller


def require_admin(*, operation: str) -> CallerContext:
    caller = require_caller(operation=operation)
    if not caller.is_admin:
        logger.info(
            'caller_forbidden operation=%s tenant_id=%s user_id=%s role=%s',
            operation,
            caller.tenant_id,
            caller.user_id,
            caller.role,
        )
        raise AuthorizationError('Admin role required')
    return caller


def require_trainer_self(trainer_id: int, *, operation: str) -> CallerContext:
    caller = require_caller(operation=operation)
    if not caller.owns_trainer(trainer_id):
        logger.info(
            'caller_not_owner operation=%s tenant_id=%s user_id=%s trainer_id=%s',
            operation,
            caller.tenant_id,
            caller.user_id,
            trainer_id,
        )
        raise AuthorizationError('Only the trainer can manage their own availability')
    return caller


def require_staff(*, operation: str) -> CallerContext:
    caller = require_caller(operation=operation)
    if not (caller.is_admin or caller.is_trainer):
        logger.info(
            'caller_forbidden operation=%s tenant_id=%s user_id=%s role=%s',
            operation,
            caller.tenant_id,
            caller.user_id,
            caller.role,
        )
        raise AuthorizationError('Admin or trainer role required')
    return caller


def require_admin_or_trainer_self(trainer_id: int, *, operation: str) -> CallerContext:
    caller = require_caller(operation=operation)
    if caller.is_admin:
        return caller
    return require_trainer_self(trainer_id, operation=operation)


def get_or_create_default_tenant(db: Session) -> Tenant:
    slug = settings.dev_default_tenant_slug
    row = db.query(Tenant).filter(Tenant.slug == slug).first()
    if row:
        return row
    row = Tenant(name=slug, slug=slug, timezone=settings.app_timezone)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
