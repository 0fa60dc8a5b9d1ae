import logging
from django.utils.deprecation import MiddlewareMixin

from .jwt_auth import ACCESS_COOKIE, get_user_id_from_token
from .models import User

logger = logging.getLogger(__name__)


class JWTCookieMiddleware(MiddlewareMixin):
    """
    Resolves the access_token cookie into request.user.

    Runs after AuthenticationMiddleware: a session user (Django admin,
    tests using force_login) always wins over the cookie.
    """

    def process_request(self, request):
        if hasattr(request, 'user') and request.user.is_authenticated:
            return

        token = request.COOKIES.get(ACCESS_COOKIE)
        if not token:
            return

        user_id = get_user_id_from_token(token)
        if not user_id:
            logger.debug("Ignoring invalid or expired access token cookie")
            return

        user = User.objects.filter(id=user_id, is_active=True).first()
        if user:
            request.user = user
