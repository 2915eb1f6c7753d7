from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Process exit codes reported by the command-line entry point."""

    OK = 0
    GENERIC_ERROR = 1
    INVALID_ARGS = 2
    PRIV_ERROR = 3  # Reserved; privilege checks happen outside nodecheck
    HEALTH_CHECK_FAILED = 4
    NETWORK_MISMATCH = 5


class NodeCheckError(Exception):
    """Base class for every error raised by nodecheck."""


class InvalidInputError(NodeCheckError):
    """Raised when caller-supplied configuration fails validation."""


class RPCError(NodeCheckError):
    """
    Base class for failures of a single health check attempt.

    Attributes:
        method (Optional[str]): The JSON-RPC method that was being called.
    """

    def __init__(self, message: str, method: Optional[str] = None) -> None:
        super().__init__(message)
        self.method = method


class TransportError(RPCError):
    """The endpoint could not be reached, timed out or answered with a bad status."""


class ProtocolError(RPCError):
    """
    The endpoint answered, but not with a usable JSON-RPC result.

    Attributes:
        rpc_message (Optional[str]): The message of the JSON-RPC error object,
                                     when the node returned one.
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        rpc_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, method)
        self.rpc_message = rpc_message


class NetworkMismatchError(RPCError):
    """The endpoint is live but reports a different chain id than expected."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Chain ID mismatch: expected {expected}, got {actual}",
            "eth_chainId",
        )
        self.expected = expected
        self.actual = actual


class HealthCheckExhaustedError(NodeCheckError):
    """
    Every health check attempt failed.

    Attributes:
        attempts (int): Number of attempts that were made.
        last_error (RPCError): The failure observed on the final attempt.
    """

    def __init__(self, attempts: int, last_error: RPCError) -> None:
        super().__init__(
            f"Health check failed after {attempts} attempts: {last_error}",
        )
        self.attempts = attempts
        self.last_error = last_error
