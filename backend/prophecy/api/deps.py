from fastapi import Request

from prophecy.services.analytics.prophecy_engine import ProphecyEngine


def get_prophecy_engine(request: Request) -> ProphecyEngine:
    """Engine built once at startup and shared by all requests"""
    return request.app.state.prophecy_engine
