from push_server.models.push_token import PushToken

__all__ = [
    "PushToken",
]
