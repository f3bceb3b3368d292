"""
Agent authenticator adapter - Implements AgentAuthenticator protocol.

Customer agents present a shared credential; only its bcrypt hash is
kept in configuration. bcrypt.checkpw() is constant-time with respect
to the presented value, so response time does not reveal how close a
guess was.
"""

import logging

import bcrypt

logger = logging.getLogger(__name__)


class BcryptAgentAuthenticator:
    """
    Implements AgentAuthenticator protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    An empty hash disables agent access entirely.
    """

    def __init__(self, credential_hash: str) -> None:
        """
        Initialize authenticator.

        Args:
            credential_hash: bcrypt hash of the agent credential, or "" to
                reject every caller
        """
        self._credential_hash = credential_hash.encode() if credential_hash else None

    def is_agent(self, credential: str | None) -> bool:
        if self._credential_hash is None:
            logger.warning("Agent credential rejected: no agent credential hash configured")
            return False
        if not credential:
            return False
        try:
            return bcrypt.checkpw(credential.encode(), self._credential_hash)
        except ValueError:
            logger.error("Configured agent credential hash is not a valid bcrypt hash")
            return False
