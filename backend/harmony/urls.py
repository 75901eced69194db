"""
Root URL configuration for the Harmony backend.
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('calendar_app.urls')),
]
