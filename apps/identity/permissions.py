from typing import Iterable, List, Dict
from .models import UserRole, User


# Define all available permissions here for reference
class Permissions:
    # Users
    MANAGE_USERS = "manageUsers"
    VIEW_USERS = "viewUsers"
    APPROVE_REGISTRATIONS = "approveRegistrations"

    # Documents
    MANAGE_DOCUMENTS = "manageDocuments"
    VIEW_DOCUMENTS = "viewDocuments"
    MANAGE_COMITE_DOCUMENTS = "manageComiteDocuments"
    MANAGE_SOCIETE_DOCUMENTS = "manageSocieteDocuments"
    MANAGE_LEGAL_DOCUMENTS = "manageLegalDocuments"
    MANAGE_FINANCE_DOCUMENTS = "manageFinanceDocuments"
    MANAGE_GENERAL_DOCUMENTS = "manageGeneralDocuments"

    # Administration
    MANAGE_SETTINGS = "manageSettings"
    VIEW_AUDIT_LOGS = "viewAuditLogs"
    MANAGE_NOTIFICATIONS = "manageNotifications"

    # WhatsApp
    MANAGE_WHATSAPP = "manageWhatsapp"
    SEND_WHATSAPP_MESSAGES = "sendWhatsappMessages"

    # Community
    MANAGE_POLLS = "managePolls"
    MANAGE_TRANSLATIONS = "manageTranslations"

    @classmethod
    def all(cls) -> List[str]:
        return [
            value for key, value in vars(cls).items()
            if key.isupper() and isinstance(value, str)
        ]


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN: Permissions.all(),
    UserRole.CONTENT_EDITOR: [
        Permissions.VIEW_DOCUMENTS,
        Permissions.MANAGE_DOCUMENTS,
        Permissions.MANAGE_POLLS,
        Permissions.MANAGE_TRANSLATIONS,
        Permissions.SEND_WHATSAPP_MESSAGES,
    ],
    UserRole.OWNER: [
        Permissions.VIEW_DOCUMENTS,
    ],
}


def get_user_permissions(user: User) -> List[str]:
    """
    Returns the permission strings for the given user: role defaults plus
    anything granted individually. Superusers hold every permission.
    """
    if not user or not getattr(user, 'is_active', False):
        return []

    if user.is_superuser or user.role == UserRole.ADMIN:
        return Permissions.all()

    perms = list(ROLE_PERMISSIONS.get(user.role, []))
    for perm in user.granted_permissions or []:
        if perm not in perms:
            perms.append(perm)
    return perms


def check_permission(user: User, permission: str) -> bool:
    return permission in get_user_permissions(user)


def has_any_permission(user: User, permissions: Iterable[str]) -> bool:
    perms = get_user_permissions(user)
    return any(p in perms for p in permissions)


def has_all_permissions(user: User, permissions: Iterable[str]) -> bool:
    perms = get_user_permissions(user)
    return all(p in perms for p in permissions)


def is_valid_permission(permission: str) -> bool:
    return permission in Permissions.all()
