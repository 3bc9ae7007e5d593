"""
URL configuration for the storefront backend.

Every app mounts its routes under `api/`; uploaded media is served from
MEDIA_URL.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Jewelry Storefront Admin"
admin.site.site_title = "Jewelry Storefront Admin Portal"
admin.site.index_title = "Catalog, requests and moderation"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('backend.core.urls')),
    path('api/', include('backend.catalog.urls')),
    path('api/', include('backend.content.urls')),
    path('api/', include('backend.designs.urls')),
    path('api/', include('backend.testimonials.urls')),
    path('api/', include('backend.contact.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
