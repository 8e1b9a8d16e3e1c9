from rest_framework.response import Response
from rest_framework.views import APIView

from .lobby import get_lobby
from .turn import build_ice_servers


class LobbyStatsView(APIView):
    def get(self, request):
        return Response(get_lobby().state.snapshot())


class IceConfigView(APIView):
    """
    Clients call this before creating RTCPeerConnection to get STUN/TURN servers.
    """

    def get(self, request):
        identity = request.headers.get("X-Client-Id", "guest")
        return Response({"iceServers": build_ice_servers(identity)})
