"""Error taxonomy of the risk pipeline.

Every error here is fail-open except PolicyViolation, which must reach the
host so the transfer is rejected.
"""


class ScaError(Exception):
    """Base class for pipeline errors."""


class AuthenticationFailed(ScaError):
    def __init__(self, status_code: int):
        super().__init__(
            f"Failed to authenticate client with authentication server (Code {status_code})",
        )
        self.status_code = status_code


class UnexpectedAuthResponse(ScaError):
    def __init__(self, body: str):
        super().__init__(
            f"Received an unexpected response from the authentication server (Response: {body})",
        )
        self.body = body


class UserNotAuthenticated(ScaError):
    def __init__(self):
        super().__init__('The user is not yet authenticated.')


class FailedToRefreshToken(ScaError):
    def __init__(self):
        super().__init__('An unexpected error occurred while refreshing the token')


class UnexpectedResponseCode(ScaError):
    def __init__(self, status_code: int):
        super().__init__(
            f"Received an unexpected response code from the SCA API (Code: {status_code})",
        )
        self.status_code = status_code


class UnexpectedResponseBody(ScaError):
    def __init__(self, body: str):
        super().__init__(
            f"Received an unexpected response from the SCA API (Response: {body})",
        )
        self.body = body


class CoordinateInvalid(ScaError):
    def __init__(self, coordinate):
        super().__init__(
            'The artifact coordinate was not built correctly. '
            f"PackageType: {coordinate.package_type}, Name: {coordinate.name}, "
            f"Version: {coordinate.version}",
        )
        self.coordinate = coordinate


class DeadlineExceeded(ScaError):
    def __init__(self, operation: str):
        super().__init__(f"Deadline exceeded before {operation}")
        self.operation = operation


class ScanRecordIncomplete(ScaError):
    def __init__(self, location: str, key: str):
        super().__init__(
            f"Scan record of {location} has no usable value for {key}",
        )
        self.location = location
        self.key = key


class PolicyViolation(ScaError):
    """Raised at the host boundary when the policy gate blocks an artifact."""

    def __init__(self, message: str, code: int = 403):
        super().__init__(message)
        self.message = message
        self.code = code
