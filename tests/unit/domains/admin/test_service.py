"""
Tests for admin user management.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from prisma.enums import UserRole
from prisma.errors import DataError, PrismaError

from buildledger.domains.admin.service import AdminUserService
from buildledger.shared.exceptions import (
    InvalidDataError,
    QueryFailedError,
    UserNotFoundError,
)
from tests.fixtures.auth_fixtures import create_mock_profile


class TestSetActive:
    @pytest.mark.asyncio
    async def test_deactivates_another_user(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        mock_prisma.profile.update = AsyncMock(
            return_value=create_mock_profile(is_active=False)
        )

        result = await AdminUserService(mock_prisma).set_active(
            mock_admin_profile, "test-user-id-123", {"is_active": False}
        )

        assert result.success is True
        assert result.user.is_active is False
        assert result.message == "User deactivated successfully"
        mock_prisma.profile.update.assert_awaited_once_with(
            where={"id": "test-user-id-123"}, data={"isActive": False}
        )

    @pytest.mark.asyncio
    async def test_admin_cannot_deactivate_self(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        with pytest.raises(InvalidDataError) as exc_info:
            await AdminUserService(mock_prisma).set_active(
                mock_admin_profile, "test-admin-id-456", {"is_active": False}
            )

        assert exc_info.value.detail == "You cannot deactivate your own account"
        mock_prisma.profile.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_flag_must_be_boolean(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        with pytest.raises(InvalidDataError):
            await AdminUserService(mock_prisma).set_active(
                mock_admin_profile, "test-user-id-123", {"is_active": "false"}
            )

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        mock_prisma.profile.update = AsyncMock(return_value=None)

        with pytest.raises(UserNotFoundError):
            await AdminUserService(mock_prisma).set_active(
                mock_admin_profile, "missing", {"is_active": True}
            )


class TestSetRole:
    @pytest.mark.asyncio
    async def test_promotes_user_to_admin(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        mock_prisma.profile.update = AsyncMock(
            return_value=create_mock_profile(role=UserRole.admin)
        )

        result = await AdminUserService(mock_prisma).set_role(
            mock_admin_profile, "test-user-id-123", {"role": "admin"}
        )

        assert result.user.role == "admin"
        mock_prisma.profile.update.assert_awaited_once_with(
            where={"id": "test-user-id-123"}, data={"role": UserRole.admin}
        )

    @pytest.mark.asyncio
    async def test_admin_cannot_demote_self(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        with pytest.raises(InvalidDataError):
            await AdminUserService(mock_prisma).set_role(
                mock_admin_profile, "test-admin-id-456", {"role": "user"}
            )

    @pytest.mark.asyncio
    async def test_unknown_role_is_rejected(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        with pytest.raises(InvalidDataError) as exc_info:
            await AdminUserService(mock_prisma).set_role(
                mock_admin_profile, "test-user-id-123", {"role": "owner"}
            )

        assert exc_info.value.detail == "Invalid role. Must be 'user' or 'admin'"


class TestAdminQueryFailures:
    @pytest.mark.asyncio
    async def test_listing_failure_is_400_with_message(self, mock_prisma: Mock):
        mock_prisma.profile.find_many = AsyncMock(
            side_effect=PrismaError("connection reset")
        )

        with pytest.raises(QueryFailedError) as exc_info:
            await AdminUserService(mock_prisma).list_users()

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Failed to fetch users: connection reset"

    @pytest.mark.asyncio
    async def test_malformed_user_id_is_400(
        self, mock_prisma: Mock, mock_admin_profile: Mock
    ):
        mock_prisma.profile.update = AsyncMock(
            side_effect=DataError(
                {"user_facing_error": {"message": "Error creating UUID"}}
            )
        )

        with pytest.raises(QueryFailedError) as exc_info:
            await AdminUserService(mock_prisma).set_role(
                mock_admin_profile, "not-a-uuid", {"role": "admin"}
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail.startswith("Failed to update user: ")
        assert "Error creating UUID" in exc_info.value.detail
