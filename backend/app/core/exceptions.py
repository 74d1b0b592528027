class ProfileAPIError(Exception):
    """Base exception for the extension profile API.

    ``status_code`` and ``public_message`` are what the client sees; the
    exception's own message is the internal reason and only goes to the logs.
    """

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.public_message
        super().__init__(self.reason)


class Unauthenticated(ProfileAPIError):
    """Raised when no verified user identity is attached to the request."""

    status_code = 401
    public_message = "Unauthorized"


class UserNotFound(ProfileAPIError):
    """Raised when the identity provider has no user record for a valid token."""

    status_code = 404
    public_message = "User not found"


class ProfileNotFound(ProfileAPIError):
    """Raised when an update targets a user without a stored profile."""

    status_code = 404
    public_message = "Profile not found"


class IdentityProviderError(ProfileAPIError):
    """Raised when the identity provider cannot be reached or answers with an error."""

    pass


class BillingProviderError(ProfileAPIError):
    """Raised when a billing provider lookup fails.

    Never reaches the client: subscription resolution recovers from it.
    """

    pass
