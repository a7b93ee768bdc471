"""
Tests for authentication dependencies in buildledger/domains/auth/dependencies.py

Tests JWT validation and profile resolution.
"""

from unittest.mock import AsyncMock, Mock, patch

import jwt
import pytest
from fastapi import HTTPException

from buildledger.domains.auth.dependencies import (
    decode_supabase_jwt,
    get_auth_id,
    get_current_profile,
)
from buildledger.domains.auth.types import SupabaseJwtPayload
from buildledger.shared.exceptions import InactiveProfileError, UnlinkedProfileError


class TestDecodeSupabaseJWT:
    """Test JWT token validation with the shared secret and JWKS modes."""

    def test_valid_hs256_token(self, test_jwt_secret: str, valid_jwt_payload: dict):
        token = jwt.encode(valid_jwt_payload, test_jwt_secret, algorithm="HS256")

        with patch(
            "buildledger.domains.auth.dependencies.settings.JWT_SECRET",
            test_jwt_secret,
        ):
            result = decode_supabase_jwt(token)

        assert result.sub == "test-user-id-123"
        assert result.email == "test@example.com"
        assert result.role == "authenticated"

    def test_invalid_token_signature_raises_401(self, test_jwt_secret: str):
        invalid_token = jwt.encode({"sub": "test"}, "wrong-secret", algorithm="HS256")

        with patch(
            "buildledger.domains.auth.dependencies.settings.JWT_SECRET",
            test_jwt_secret,
        ):
            with pytest.raises(HTTPException) as exc_info:
                decode_supabase_jwt(invalid_token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid or expired token"

    def test_expired_token_raises_401(self, test_jwt_secret: str):
        token = jwt.encode(
            {"sub": "test", "exp": 1}, test_jwt_secret, algorithm="HS256"
        )

        with patch(
            "buildledger.domains.auth.dependencies.settings.JWT_SECRET",
            test_jwt_secret,
        ):
            with pytest.raises(HTTPException) as exc_info:
                decode_supabase_jwt(token)

        assert exc_info.value.status_code == 401

    def test_missing_configuration_raises_500(self):
        """Neither JWT_SECRET nor a JWKS endpoint is configured."""
        with (
            patch("buildledger.domains.auth.dependencies.settings.JWT_SECRET", None),
            patch("buildledger.domains.auth.dependencies._jwks_client", None),
        ):
            with pytest.raises(HTTPException) as exc_info:
                decode_supabase_jwt("test.jwt.token")

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Supabase not configured"


class TestGetAuthId:
    def test_extract_auth_id_from_valid_bearer_token(self, valid_jwt_token: str):
        with patch(
            "buildledger.domains.auth.dependencies.decode_supabase_jwt"
        ) as mock_decode:
            mock_decode.return_value = SupabaseJwtPayload(
                sub="test-user-id-123", email="test@example.com"
            )

            result = get_auth_id(f"Bearer {valid_jwt_token}")

        assert result == "test-user-id-123"
        mock_decode.assert_called_once_with(valid_jwt_token)

    @pytest.mark.parametrize(
        "header", [None, "", "InvalidFormat token", "Bearer", "Basic dGVzdA=="]
    )
    def test_missing_or_malformed_header_raises_401(self, header):
        with pytest.raises(HTTPException) as exc_info:
            get_auth_id(header)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Missing token"

    def test_token_without_sub_raises_401(self, valid_jwt_token: str):
        with patch(
            "buildledger.domains.auth.dependencies.decode_supabase_jwt"
        ) as mock_decode:
            mock_decode.return_value = SupabaseJwtPayload(email="test@example.com")

            with pytest.raises(HTTPException) as exc_info:
                get_auth_id(f"Bearer {valid_jwt_token}")

        assert exc_info.value.status_code == 401


class TestGetCurrentProfile:
    @pytest.mark.asyncio
    async def test_active_profile_is_returned(
        self, mock_prisma: Mock, mock_profile: Mock
    ):
        mock_prisma.profile.find_unique = AsyncMock(return_value=mock_profile)

        result = await get_current_profile("test-user-id-123", mock_prisma)

        assert result is mock_profile
        mock_prisma.profile.find_unique.assert_awaited_once_with(
            where={"id": "test-user-id-123"}
        )

    @pytest.mark.asyncio
    async def test_missing_profile_raises_unlinked_profile_error(
        self, mock_prisma: Mock
    ):
        with pytest.raises(UnlinkedProfileError):
            await get_current_profile("nonexistent-auth-id", mock_prisma)

    @pytest.mark.asyncio
    async def test_deactivated_profile_is_rejected(
        self, mock_prisma: Mock, mock_inactive_profile: Mock
    ):
        mock_prisma.profile.find_unique = AsyncMock(return_value=mock_inactive_profile)

        with pytest.raises(InactiveProfileError) as exc_info:
            await get_current_profile("test-inactive-id-789", mock_prisma)

        assert exc_info.value.status_code == 403
