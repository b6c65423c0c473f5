from django.urls import include, path

urlpatterns = [
    path("", include("fleet_integrations.urls")),
]
