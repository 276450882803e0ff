from __future__ import annotations

from fastapi import Depends

from questboard_api.core.config import Settings
from questboard_api.profile_store import ProfileStore, get_profile_store


def get_settings() -> Settings:
    return Settings()


def get_store() -> ProfileStore:
    return get_profile_store()


AppSettings = Depends(get_settings)
Store = Depends(get_store)
