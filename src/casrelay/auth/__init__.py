"""
CAS authentication: the login handshake and its page helpers.
"""

__all__ = ["Authenticator", "CasLoginOrchestrator"]

from .cas import CasLoginOrchestrator
from .protocols import Authenticator
