"""FastAPI application entry point."""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teamdesk.api.deps import get_current_user
from teamdesk.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from teamdesk.api.routes import invitations, metrics, teams, templates, tenants
from teamdesk.core.config import get_settings
from teamdesk.core.permissions import effective_permissions
from teamdesk.core.structured_logging import configure_logging
from teamdesk.models.user import User
from teamdesk.schemas.user import PublicUserResponse, UserPermissionsResponse

settings = get_settings()
configure_logging()

docs_enabled = settings.api_docs_enabled
if docs_enabled is None:
    docs_enabled = settings.environment != "production"

app = FastAPI(
    title="TeamDesk API",
    description="Tenants, teams and invitations for the TeamDesk helpdesk",
    version="1.0.0",
    docs_url="/api/docs" if docs_enabled else None,
    redoc_url="/api/redoc" if docs_enabled else None,
    openapi_url="/api/openapi.json" if docs_enabled else None,
)

# Middleware configuration (order matters - applied in reverse order)
# 1. Request logging (outermost - logs all requests)
app.add_middleware(RequestLoggingMiddleware)

# 2. Security headers
app.add_middleware(SecurityHeadersMiddleware)

# 3. Rate limiting (applied before routing)
app.add_middleware(RateLimitMiddleware)

# 4. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(tenants.router, prefix="/api/tenants", tags=["tenants"])
app.include_router(invitations.router, prefix="/api/invitations", tags=["invitations"])
app.include_router(templates.router, prefix="/api/invitation-templates", tags=["invitations"])
app.include_router(teams.router, prefix="/api/teams", tags=["teams"])
app.include_router(metrics.router, prefix="/api", tags=["metrics"])


@app.get("/api/me", response_model=PublicUserResponse, tags=["users"])
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return PublicUserResponse.model_validate(current_user)


@app.get("/api/me/permissions", response_model=UserPermissionsResponse, tags=["users"])
async def get_current_user_permissions(current_user: User = Depends(get_current_user)):
    """Effective permissions of the current user (role defaults plus grants)."""
    return UserPermissionsResponse(
        user_id=current_user.id,
        role=current_user.role,
        permissions=sorted(p.value for p in effective_permissions(current_user)),
    )
