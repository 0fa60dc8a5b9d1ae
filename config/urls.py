"""
URL configuration for the community portal.
"""
from django.contrib import admin
from django.urls import path
from django.conf import settings
from django.conf.urls.static import static
from ninja import NinjaAPI

api = NinjaAPI(
    title="Costa Beach Portal API",
    version="1.0.0",
    description="Community portal for owners: documents, translations, polls and WhatsApp notifications",
    docs_url="/docs",
)

from apps.identity.api import router as identity_router
from apps.identity.registration_api import router as registration_router
from apps.governance.api import router as governance_router
from apps.documents.api import router as documents_router
from apps.translations.api import router as translations_router
from apps.polls.api import router as polls_router
from apps.notifications.api import router as notifications_router

api.add_router("/identity/", identity_router)
api.add_router("/registrations/", registration_router)
api.add_router("/governance/", governance_router)
api.add_router("/documents/", documents_router)
api.add_router("/translations/", translations_router)
api.add_router("/polls/", polls_router)
api.add_router("/whatsapp/", notifications_router)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(
        getattr(settings, 'MEDIA_URL', '/media/'),
        document_root=getattr(settings, 'MEDIA_ROOT', settings.BASE_DIR / 'media')
    )
