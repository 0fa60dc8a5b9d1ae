from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from apps.governance.audit_service import AuditAction, log_action


@receiver(user_logged_in)
def log_user_login(sender, user, request, **kwargs):
    """
    Record portal logins in the audit log.
    """
    ip = request.META.get('REMOTE_ADDR', '') if request else ''
    user_agent = request.META.get('HTTP_USER_AGENT', '') if request else ''

    log_action(
        action=AuditAction.LOGIN,
        entity_type="User",
        entity_id=user.id,
        entity_label=str(user),
        user=user,
        details={"user_agent": user_agent},
        ip_address=ip,
    )
