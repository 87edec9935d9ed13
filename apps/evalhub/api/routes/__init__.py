"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter) lives here; every sub-router imports what
it needs from this package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# Mutating planning endpoints; generous enough for an admin clicking around
PLANNING_WRITE_LIMIT = os.getenv("PLANNING_WRITE_LIMIT", "30/minute")

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from evalhub.api.routes.health import router as health_router  # noqa: E402
from evalhub.api.routes.cohorts import router as cohorts_router  # noqa: E402
from evalhub.api.routes.seasons import router as seasons_router  # noqa: E402
from evalhub.api.routes.waves import router as waves_router  # noqa: E402

router = APIRouter()
router.include_router(health_router)
router.include_router(cohorts_router)
router.include_router(seasons_router)
router.include_router(waves_router)
