from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from planning.config import settings
from planning.db import Base, engine
from planning.route_logging import EndpointNameRoute
from planning.routers import availability, planning
from planning.tenant_middleware import TenantResolutionMiddleware, get_request_tenant_id

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute
app.add_middleware(TenantResolutionMiddleware)


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('planning.request').info(
            'request_slow path=%s method=%s status_code=%s tenant_id=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            get_request_tenant_id(request),
            duration_ms,
        )
    return response

app.include_router(planning.router)
app.include_router(availability.router)


@app.get('/')
def health():
    return {'app': settings.app_name, 'status': 'ok'}


@app.get('/health')
def healthcheck():
    return {'status': 'ok'}
