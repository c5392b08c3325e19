"""API router package for endpoint composition."""

from .callback import api_create_callback_router
from .health import api_create_health_router
from .runs import api_create_runs_router, api_serialize_counter

__all__ = [
    "api_create_callback_router",
    "api_create_health_router",
    "api_create_runs_router",
    "api_serialize_counter",
]
