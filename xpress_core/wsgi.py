"""
WSGI config for XPRESS OPS.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'xpress_core.settings')

application = get_wsgi_application()
