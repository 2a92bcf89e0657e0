import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker, with_loader_criteria

from planning.config import settings
from planning.route_logging import current_endpoint


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

_slow_logger = logging.getLogger('planning.db.slow_query')


@event.listens_for(engine, 'before_cursor_execute')
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.perf_counter()


@event.listens_for(engine, 'after_cursor_execute')
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    started = getattr(context, '_query_start_time', None)
    if started is None:
        return
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms < settings.db_slow_query_ms:
        return
    _slow_logger.warning(
        'slow_query duration_ms=%.2f endpoint=%s sql=%s',
        duration_ms,
        current_endpoint.get(),
        ' '.join((statement or '').split()),
    )


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@event.listens_for(Session, 'do_orm_execute')
def _scope_selects_to_current_tenant(execute_state):
    """Second line of tenant isolation under the explicit filters in the services."""
    if not execute_state.is_select:
        return

    from planning.models import TENANT_SCOPED_MODELS
    from planning.services.tenant_scope_service import get_current_tenant_id

    tenant_id = get_current_tenant_id()
    if tenant_id is None:
        return

    execute_state.statement = execute_state.statement.options(
        *(
            with_loader_criteria(model, lambda cls: cls.tenant_id == tenant_id, include_aliases=True)
            for model in TENANT_SCOPED_MODELS
        )
    )
