"""Proof key and state values for one SSO login.

The verifier and state stay in the credential store; only the S256
challenge and the state travel in the authorize URL.
"""

import base64
import hashlib
import secrets
import uuid
from dataclasses import dataclass

from .records import SsoSessionRecord

# 48 random bytes encode to 64 base64url characters
VERIFIER_BYTES = 48

CHALLENGE_METHOD = "S256"


def code_challenge(code_verifier: str) -> str:
    """BASE64URL(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class LoginChallenge:
    code_verifier: str
    challenge: str
    state: str

    def session(self) -> SsoSessionRecord:
        """The record to keep until the redirect comes back."""
        return SsoSessionRecord(code_verifier=self.code_verifier, state=self.state)


def new_login_challenge() -> LoginChallenge:
    code_verifier = secrets.token_urlsafe(VERIFIER_BYTES)
    return LoginChallenge(
        code_verifier=code_verifier,
        challenge=code_challenge(code_verifier),
        state=str(uuid.uuid4()),
    )
