from prisma.models import Profile

from buildledger.domains.auth.models import SessionState


class SessionService:
    """Service for session-related operations"""

    def get_session_state(self, profile: Profile) -> SessionState:
        """
        Build the session state for an authenticated profile.

        Args:
            profile: User's profile object

        Returns:
            SessionState with identity, role and activation flag
        """
        return SessionState.from_prisma(profile)
