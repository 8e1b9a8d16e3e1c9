from django.urls import path
from .views import IceConfigView, LobbyStatsView

urlpatterns = [
    path("stats/", LobbyStatsView.as_view()),
    path("ice-config/", IceConfigView.as_view()),
]
