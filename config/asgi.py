"""
ASGI config for the community portal.

Served by Uvicorn/Daphne directly, or wrapped by Mangum in
lambda_handlers.api_handler for API Gateway.
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

from django.core.asgi import get_asgi_application

# Initialised at import time so Lambda pays the cost once per container
application = get_asgi_application()
