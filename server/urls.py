"""
Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.

It is also a good practice to keep a single URL to the root index page.
"""

from django.contrib import admin
from django.urls import include, path

from server.apps.sharing import urls as sharing_urls
from server.apps.sharing.views import health

urlpatterns = [
    # Apps:
    path('api/v1/', include(sharing_urls, namespace='sharing')),

    # Health check:
    path('health/', health, name='health'),

    # django-admin:
    path('admin/', admin.site.urls),
]
