"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import (
    AuthenticationRequiredError,
    AuthError,
    InsufficientPermissionsError,
    InvalidTokenError,
    MissingTokenError,
    UserNotFoundError,
)
from app.models.user import User, UserRole
from app.services.access_policy import can_access_company
from app.services.jwt import JWTService, get_jwt_service

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Authenticated user context."""

    id: str
    email: str
    role: UserRole
    company_id: str | None = None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> CurrentUser:
    """Validate the Bearer access token and load its user. Raises 401 if invalid."""
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()

    payload = jwt_service.verify_access_token(credentials.credentials)
    user_id = payload.get("id")
    if not user_id:
        raise InvalidTokenError()

    # The token may outlive the account; re-check the user on every request.
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UserNotFoundError()

    current = CurrentUser(id=user.id, email=user.email, role=user.role, company_id=user.company_id)
    request.state.user = current
    return current


def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    jwt_service: JWTService = Depends(get_jwt_service),
) -> CurrentUser | None:
    """Like get_current_user, but anonymous or invalid callers get None."""
    if credentials is None:
        return None
    try:
        return get_current_user(request, credentials, db, jwt_service)
    except AuthError:
        return None


def require_role(*allowed_roles: UserRole):
    """Dependency factory restricting a route to the given roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: CurrentUser = Depends(require_role(UserRole.ADMIN))):
            ...
    """

    def role_checker(current_user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
        if current_user is None:
            raise AuthenticationRequiredError()
        if current_user.role not in allowed_roles:
            raise InsufficientPermissionsError()
        return current_user

    return role_checker


async def _body_company_id(request: Request) -> str | None:
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = await request.json()
    except ValueError:
        return None
    company_id = body.get("companyId") if isinstance(body, dict) else None
    return company_id if isinstance(company_id, str) else None


async def require_company_access(
    request: Request,
    current_user: CurrentUser | None = Depends(get_optional_user),
) -> CurrentUser:
    """Restrict property managers to records of their own company.

    Every ``companyId`` the request names is checked: the path parameter,
    the JSON body and the query string.
    """
    if current_user is None:
        raise AuthenticationRequiredError()

    candidates = (
        request.path_params.get("companyId"),
        await _body_company_id(request),
        request.query_params.get("companyId"),
    )
    for company_id in {c for c in candidates if c}:
        if not can_access_company(current_user.role, company_id, current_user.company_id):
            raise InsufficientPermissionsError("You can only access resources from your own company")
    return current_user


def get_client_ip(request: Request) -> str:
    """Client IP address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"
