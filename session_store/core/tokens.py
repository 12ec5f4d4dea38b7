# session_store/core/tokens.py
"""
Session token generation.

Tokens are drawn from the operating system CSPRNG via :mod:`secrets`
over a 62 character alphanumeric alphabet.
"""
import secrets
import string

TOKEN_LENGTH = 24
TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Return a new unguessable alphanumeric token of ``length`` characters"""
    return ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
