from fastapi import APIRouter
from fastapi.responses import JSONResponse
from typing import Callable

from core.errors import FetchError, UnknownMetric
from core.logger import Logger
logger = Logger(__name__)

def route(method: str, path: str, **kwargs):
    """Generic decorator to mark a method as a route handler."""
    def decorator(func: Callable):
        func._api_route = (method.lower(), path, kwargs)
        return func
    return decorator

def get(path: str, **kwargs): return route("get", path, **kwargs)
def post(path: str, **kwargs): return route("post", path, **kwargs)

class BaseAPI:
    """
    Base class for modular FastAPI route groups.
    Subclasses define routes with @get, @post and may declare a
    ``service: SomeService`` annotation to get an instance built for them.
    """
    base_prefix: str = "/api"

    def __init__(self, prefix: str, service=None):
        self.router = APIRouter(prefix=f"{self.base_prefix}{prefix}")
        self._init_service(service)
        self._register_routes()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        annotations = getattr(cls, '__annotations__', {})
        if 'service' in annotations:
            cls.service_class = annotations['service']

    def _init_service(self, service):
        if service is not None:
            self.service = service
        elif hasattr(self.__class__, 'service_class'):
            self.service = self.__class__.service_class()

    def _register_routes(self):
        for attr_name in dir(self):
            method = getattr(self, attr_name)
            if callable(method) and hasattr(method, "_api_route"):
                http_method, path, options = method._api_route
                getattr(self.router, http_method)(path, **options)(method)
                logger.debug(f"Registered route: [{http_method.upper()}] {path} in {self.__class__.__name__}")


def register_error_handlers(app):
    """Map domain errors to HTTP responses on a FastAPI app."""
    async def unknown_metric(request, exc: UnknownMetric):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    async def fetch_failed(request, exc: FetchError):
        logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc), "kind": exc.kind})

    app.add_exception_handler(UnknownMetric, unknown_metric)
    app.add_exception_handler(FetchError, fetch_failed)
