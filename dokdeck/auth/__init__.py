"""
Authentication: PAT sign-in and the session state machine.
"""

from dokdeck.auth.session import AuthenticationError, SessionManager

__all__ = ["AuthenticationError", "SessionManager"]
