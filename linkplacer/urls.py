"""URL configuration for the link placer app.

The ``app_name`` allows namespacing from the project URL configuration.
"""

from django.urls import path

from . import views

app_name = 'linkplacer'

urlpatterns = [
    path('api/reduce/', views.reduce_document, name='reduce'),
    path('api/place/', views.place_links, name='place'),
    path('api/history/', views.placement_history, name='history'),
]
