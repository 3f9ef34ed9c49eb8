"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of writing
``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias maps to one
``get_*`` factory and can be overridden in tests via
``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from gemini_relay.configs.config import AppConfig
from gemini_relay.core.service.deps import get_config, get_relay_service
from gemini_relay.core.service.relay import RelayService

AppConfigDep = Annotated[AppConfig, Depends(get_config)]
RelayServiceDep = Annotated[RelayService, Depends(get_relay_service)]
