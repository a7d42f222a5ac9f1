"""Fitbit Web API endpoints and OAuth2 constants."""

from datetime import timedelta

API_BASE_URL = "https://api.fitbit.com"
AUTHORIZATION_URL = "https://www.fitbit.com/oauth2/authorize"
TOKEN_URL = "https://api.fitbit.com/oauth2/token"

CODE_CHALLENGE_METHOD = "S256"

NUMBER_LETTERS = "0123456789"
UPPERCASE_ALPHABET_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE_ALPHABET_LETTERS = "abcdefghijklmnopqrstuvwxyz"
RANDOM_ALPHABET = NUMBER_LETTERS + UPPERCASE_ALPHABET_LETTERS + LOWERCASE_ALPHABET_LETTERS

CSRF_STATE_LENGTH = 128
CODE_VERIFIER_LENGTH = 128

# A token this close to its expiry is treated as already expired.
EXPIRY_LEEWAY = timedelta(seconds=10)

DEFAULT_TIMEOUT = 30.0
