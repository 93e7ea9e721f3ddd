"""Company-scoped authorization policy."""

from app.models.user import UserRole


def can_access_company(
    role: UserRole | str,
    resource_company_id: str | None,
    caller_company_id: str | None,
) -> bool:
    """Decide whether a caller may touch a record owned by ``resource_company_id``.

    Admins see everything. Property managers are limited to their own company.
    Records without a company and other roles are not restricted here.
    """
    role = UserRole(role)
    if role == UserRole.ADMIN:
        return True
    if resource_company_id is None:
        return True
    if role == UserRole.PROPERTY_MANAGER:
        return caller_company_id is not None and resource_company_id == caller_company_id
    return True
