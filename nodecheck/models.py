# nodecheck/models.py
import re
from typing import Any, List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    ValidationError,
    field_validator,
)
from yarl import URL

from nodecheck.errors import InvalidInputError
from nodecheck.utils.custom_types import HexInt

_NODE_NAME_RE = re.compile(r"[a-zA-Z0-9_-]+")
_CHAIN_ID_RE = re.compile(r"[0-9]+")


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    message = error["msg"].removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


class RpcEndpoint(BaseModel):
    """
    A validated JSON-RPC endpoint URL.

    Attributes:
        url (str): The endpoint URL. Must start with http:// or https://
                   and name a host.
    """

    model_config = ConfigDict(frozen=True)

    url: str

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"must start with http:// or https:// (got: {value})",
            )
        if not URL(value).host:
            raise ValueError(f"missing host (got: {value})")
        return value

    @classmethod
    def parse(cls, url: str) -> "RpcEndpoint":
        """
        Validate a raw URL string.

        Args:
            url (str): The URL supplied by the caller.

        Returns:
            RpcEndpoint: The validated endpoint.

        Raises:
            InvalidInputError: If the URL is not an http(s) URL.
        """
        try:
            return cls(url=url)
        except ValidationError as exc:
            raise InvalidInputError(
                f"Invalid RPC URL format: {_first_error(exc)}",
            ) from exc

    def __str__(self) -> str:
        return self.url


class ChainStatus(BaseModel):
    """
    Snapshot produced by one successful health check attempt.

    Attributes:
        block_number (int): The latest block number reported by the node.
        chain_id (int): The chain id reported by the node.
    """

    model_config = ConfigDict(frozen=True)

    block_number: NonNegativeInt
    chain_id: NonNegativeInt


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request body."""

    jsonrpc: str = "2.0"
    method: str
    params: List[Any] = Field(default_factory=list)
    id: int


class QuantityResponse(BaseModel):
    """
    Result of a JSON-RPC call that returns a hex quantity.

    Attributes:
        result (int): The decoded quantity.
    """

    result: HexInt


class HealthCheckOptions(BaseModel):
    """
    Caller-supplied configuration for a health check run.

    Attributes:
        endpoint (RpcEndpoint): The node's JSON-RPC endpoint.
        expected_chain_id (int): The chain id the node must report.
        node_name (str): Label used in log output.
        max_attempts (int): Number of attempts before giving up.
        retry_delay (float): Seconds to wait between attempts.
        timeout (float): Per-request timeout in seconds.
        fail_fast_on_mismatch (bool): Stop at the first chain id mismatch
                                      instead of retrying it.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: RpcEndpoint
    expected_chain_id: NonNegativeInt = 1
    node_name: str = "eth-node"
    max_attempts: PositiveInt = 3
    retry_delay: NonNegativeFloat = 2.0
    timeout: PositiveFloat = 10.0
    fail_fast_on_mismatch: bool = False

    @field_validator("endpoint", mode="before")
    @classmethod
    def _coerce_endpoint(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"url": value}
        return value

    @field_validator("expected_chain_id", mode="before")
    @classmethod
    def _check_chain_id(cls, value: Any) -> Any:
        if isinstance(value, str) and not _CHAIN_ID_RE.fullmatch(value):
            raise ValueError(f"must be numeric (got: {value})")
        return value

    @field_validator("node_name")
    @classmethod
    def _check_node_name(cls, value: str) -> str:
        if not _NODE_NAME_RE.fullmatch(value):
            raise ValueError(
                "must contain only alphanumerics, hyphens, underscores "
                f"(got: {value})",
            )
        return value

    @classmethod
    def build(cls, **values: Any) -> "HealthCheckOptions":
        """
        Validate caller input into an options object.

        Raises:
            InvalidInputError: If any value fails validation.
        """
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise InvalidInputError(
                f"Invalid configuration: {_first_error(exc)}",
            ) from exc
