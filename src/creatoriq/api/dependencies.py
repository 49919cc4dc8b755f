from fastapi import Request

from ..analyze.analyzer import Analyzer
from ..config import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_analyzer(request: Request) -> Analyzer:
    return request.app.state.analyzer
