from django.urls import re_path

from .consumers import StrangerConsumer

websocket_urlpatterns = [
    re_path(r"^ws/lobby/?$", StrangerConsumer.as_asgi()),
]
