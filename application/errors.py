"""Error taxonomy shared by the session and conversation layers.

Adapters translate library exceptions (postgrest, Supabase auth, httpx)
into these types so use cases only ever see one hierarchy.
"""


class ChatClientError(Exception):
    """Base class for every failure surfaced by this package."""


class AuthError(ChatClientError):
    """Invalid credentials, provider failure or expired session."""


class AuthRequired(ChatClientError):
    """Raised when an operation needs a signed-in user and none is held."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ValidationError(ChatClientError):
    """Malformed input rejected before any remote call."""


class RemoteError(ChatClientError):
    """Network or store failure from the persistence or identity boundary."""


class NotFoundError(ChatClientError):
    """The mutation target does not exist remotely (or is not owned by the user)."""
