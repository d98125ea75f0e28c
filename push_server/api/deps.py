from fastapi import Request

from push_server.services.fanout import FanoutCoordinator
from push_server.services.tokens import SqlTokenStore


def get_token_store(request: Request) -> SqlTokenStore:
    return request.app.state.token_store


def get_fanout_coordinator(request: Request) -> FanoutCoordinator:
    return request.app.state.fanout
