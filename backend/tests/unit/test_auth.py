"""Unit tests for administrative access control."""

import pytest
from fastapi import HTTPException

from seismistats.config import Settings
from seismistats.core.auth import require_admin_mode


@pytest.mark.asyncio
class TestRequireAdminMode:
    """Tests for the admin-mode gate on mutating endpoints."""

    async def test_disabled_admin_mode_is_forbidden(self):
        settings = Settings(admin_mode=False, api_key="")

        with pytest.raises(HTTPException) as exc_info:
            await require_admin_mode(settings, api_key=None)

        assert exc_info.value.status_code == 403

    async def test_admin_mode_without_key_allows(self):
        settings = Settings(admin_mode=True, api_key="")

        assert await require_admin_mode(settings, api_key=None) is None

    async def test_missing_key_is_unauthorized(self):
        settings = Settings(admin_mode=True, api_key="secret")

        with pytest.raises(HTTPException) as exc_info:
            await require_admin_mode(settings, api_key=None)

        assert exc_info.value.status_code == 401

    async def test_wrong_key_is_unauthorized(self):
        settings = Settings(admin_mode=True, api_key="secret")

        with pytest.raises(HTTPException) as exc_info:
            await require_admin_mode(settings, api_key="guess")

        assert exc_info.value.status_code == 401

    async def test_matching_key_allows(self):
        settings = Settings(admin_mode=True, api_key="secret")

        assert await require_admin_mode(settings, api_key="secret") is None
