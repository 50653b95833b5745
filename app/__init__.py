"""Application factory and top-level wiring for the production ops service.

This module brings together configuration, database setup, middlewares, the
JSON API routers and error handling. ``app.main`` adds logging, metrics and
the health check on top.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.errors import install_error_handlers
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the SQLAlchemy models registers them with the metadata. Without
# this step ``Base.metadata.create_all`` would not know about our tables.
from .models import inventory as _inventory  # noqa: F401
from .models import order as _order  # noqa: F401
from .models import party as _party  # noqa: F401
from .models import purchase as _purchase  # noqa: F401

# ---------- App init ----------
app = FastAPI(title=settings.APP_NAME)

# ---------- DB init/migrations ----------
# ``create_all`` ensures tables exist for brand-new databases, while
# ``run_migrations`` upgrades existing installations.
Base.metadata.create_all(bind=engine)
run_migrations(engine)

# ---------- Middlewares ----------
app.add_middleware(SecurityHeadersMiddleware)
if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
# Added last so it wraps everything else and tags every log line.
app.add_middleware(RequestIdMiddleware)

# ---------- Routers ----------
from .routers import api_inventory as api_inventory_router  # noqa: E402

app.include_router(api_inventory_router.router, prefix="")

from .routers import api_transactions as api_transactions_router  # noqa: E402

app.include_router(api_transactions_router.router, prefix="")

from .routers import api_purchases as api_purchases_router  # noqa: E402

app.include_router(api_purchases_router.router, prefix="")

from .routers import api_orders as api_orders_router  # noqa: E402

app.include_router(api_orders_router.router, prefix="")

from .routers import api_suppliers as api_suppliers_router  # noqa: E402

app.include_router(api_suppliers_router.router, prefix="")

from .routers import api_companies as api_companies_router  # noqa: E402

app.include_router(api_companies_router.router, prefix="")

from .routers import api_reports as api_reports_router  # noqa: E402

app.include_router(api_reports_router.router, prefix="")

# ---------- Exception handling ----------
install_error_handlers(app)


__all__ = ["app"]
