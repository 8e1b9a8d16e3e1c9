from django.urls import path, include

urlpatterns = [
    path("api/lobby/", include("matchmaking.urls")),
]
