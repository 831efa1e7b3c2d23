"""Dependency probes — 헬스 aggregator 가 조회하는 의존성 체크."""

from .base import ResourceProbe, StaticProbe
from .database import DatabaseProbe
from .http import HttpProbe
from .redis import RedisProbe

__all__ = ["DatabaseProbe", "HttpProbe", "RedisProbe", "ResourceProbe", "StaticProbe"]
