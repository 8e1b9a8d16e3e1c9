import base64
import hmac
import time
from hashlib import sha1
from django.conf import settings


def generate_turn_credentials(identity: str, ttl_seconds: int | None = None):
    if ttl_seconds is None:
        ttl_seconds = settings.TURN_CREDENTIAL_TTL_SECONDS
    expiry = int(time.time()) + ttl_seconds
    username = f"{expiry}:{identity}"

    secret = settings.TURN_STATIC_AUTH_SECRET.encode("utf-8")
    digest = hmac.new(secret, username.encode("utf-8"), sha1).digest()
    password = base64.b64encode(digest).decode("utf-8")
    return username, password


def build_ice_servers(identity: str) -> list[dict]:
    servers = []
    if settings.STUN_URLS:
        servers.append({"urls": list(settings.STUN_URLS)})

    if settings.TURN_STATIC_AUTH_SECRET:
        u, p = generate_turn_credentials(identity=identity)
        host = settings.TURN_HOST
        port = settings.TURN_PORT
        servers.append({
            "urls": [
                f"turn:{host}:{port}?transport=udp",
                f"turn:{host}:{port}?transport=tcp",
            ],
            "username": u,
            "credential": p,
        })
    return servers
