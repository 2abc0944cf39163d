"""
WSGI config for form_gateway project.
"""
import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'form_gateway.settings')
application = get_wsgi_application()
