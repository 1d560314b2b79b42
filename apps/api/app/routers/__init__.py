"""API routers."""

from app.routers.forms import router as forms_router
from app.routers.submissions import router as submissions_router

__all__ = [
    "forms_router",
    "submissions_router",
]
