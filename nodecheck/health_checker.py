import asyncio
from typing import Awaitable, Callable

from loguru import logger

from nodecheck.config import settings
from nodecheck.errors import (
    HealthCheckExhaustedError,
    InvalidInputError,
    NetworkMismatchError,
    RPCError,
)
from nodecheck.models import ChainStatus, HealthCheckOptions
from nodecheck.rpc_client import RPCClient
from nodecheck.utils.decorators import log_execution

Sleep = Callable[[float], Awaitable[None]]


class HealthChecker:
    """
    HealthChecker verifies that a node's JSON-RPC endpoint is live and serving
    the expected network.

    Each attempt fetches the latest block number and the chain id. The first
    attempt where both succeed ends the run; otherwise the checker waits a fixed
    delay and tries again, up to max_attempts.

    Methods:
        check_block_number() -> int:
            Fetch and decode eth_blockNumber.
        check_chain_id() -> int:
            Fetch and decode eth_chainId and compare it with the expected id.
        run() -> ChainStatus:
            Run the bounded retry loop.
    """

    def __init__(
        self,
        rpc_client: RPCClient,
        expected_chain_id: int,
        max_attempts: int = settings.max_attempts,
        retry_delay: float = settings.retry_delay,
        fail_fast_on_mismatch: bool = settings.fail_fast_on_mismatch,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize the health checker.

        Args:
            rpc_client (RPCClient): Client bound to the endpoint under test.
            expected_chain_id (int): The chain id the node must report.
            max_attempts (int): Number of attempts before giving up. Must be >= 1.
            retry_delay (float): Seconds to wait between attempts. Must be >= 0.
            fail_fast_on_mismatch (bool): Raise NetworkMismatchError right away
                                          instead of retrying it.
            sleep (Sleep): Coroutine function used to wait between attempts.

        Raises:
            InvalidInputError: If max_attempts or retry_delay is out of range.
        """
        if max_attempts < 1:
            raise InvalidInputError("max_attempts must be at least 1")
        if retry_delay < 0:
            raise InvalidInputError("retry_delay must not be negative")

        self.rpc_client = rpc_client
        self.expected_chain_id = int(expected_chain_id)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.fail_fast_on_mismatch = fail_fast_on_mismatch
        self._sleep = sleep

    async def check_block_number(self) -> int:
        """
        Fetch the latest block number.

        Returns:
            int: The block number, decoded from hex.

        Raises:
            TransportError: If the endpoint cannot be reached.
            ProtocolError: If the response carries no usable result.
        """
        logger.info("Fetching latest block number from RPC...")
        block_number = await self.rpc_client.get_latest_block_number()
        logger.info(f"Latest block: {block_number} ({hex(block_number)})")
        return block_number

    async def check_chain_id(self) -> int:
        """
        Fetch the chain id and compare it with the expected one.

        Both sides are integers by the time they are compared; the node's hex
        string is never compared with the configured value directly.

        Returns:
            int: The chain id, decoded from hex.

        Raises:
            TransportError: If the endpoint cannot be reached.
            ProtocolError: If the response carries no usable result.
            NetworkMismatchError: If the chain id differs from the expected one.
        """
        logger.info("Fetching chain ID from RPC...")
        chain_id = await self.rpc_client.get_chain_id()
        if chain_id != self.expected_chain_id:
            raise NetworkMismatchError(self.expected_chain_id, chain_id)
        logger.info(f"Chain ID matches: {chain_id}")
        return chain_id

    @log_execution()
    async def run(self) -> ChainStatus:
        """
        Run the health check with bounded, fixed-delay retries.

        Returns:
            ChainStatus: Block number and chain id from the first fully
                         successful attempt.

        Raises:
            HealthCheckExhaustedError: If every attempt failed. The last failure
                                       is attached as ``last_error``.
            NetworkMismatchError: If fail_fast_on_mismatch is set and the node
                                  reports another chain.
        """
        endpoint = self.rpc_client.rpc_endpoint
        logger.info(
            f"Starting RPC health check against {endpoint} "
            f"(up to {self.max_attempts} attempts)...",
        )

        last_error: RPCError
        attempt = 1
        while True:
            logger.info(f"Health check attempt {attempt}/{self.max_attempts}")
            try:
                block_number = await self.check_block_number()
                chain_id = await self.check_chain_id()
            except NetworkMismatchError as exc:
                if self.fail_fast_on_mismatch:
                    logger.error(f"{endpoint}: {exc}; not retrying")
                    raise
                last_error = exc
            except RPCError as exc:
                last_error = exc
            else:
                return ChainStatus(block_number=block_number, chain_id=chain_id)

            logger.warning(
                f"Attempt {attempt}/{self.max_attempts} against {endpoint} "
                f"failed: {last_error}",
            )
            if attempt >= self.max_attempts:
                logger.error(
                    f"Health check against {endpoint} failed after "
                    f"{self.max_attempts} attempts",
                )
                raise HealthCheckExhaustedError(
                    self.max_attempts,
                    last_error,
                ) from last_error

            logger.info(f"Retrying in {self.retry_delay}s...")
            await self._sleep(self.retry_delay)
            attempt += 1


async def run_health_check(
    endpoint: str,
    expected_chain_id: int,
    max_attempts: int = settings.max_attempts,
    retry_delay: float = settings.retry_delay,
    timeout: float = settings.http_timeout,
    fail_fast_on_mismatch: bool = settings.fail_fast_on_mismatch,
) -> ChainStatus:
    """
    Validate the endpoint, run a health check against it and release the session.

    Args:
        endpoint (str): The node's JSON-RPC URL.
        expected_chain_id (int): The chain id the node must report.
        max_attempts (int): Number of attempts before giving up.
        retry_delay (float): Seconds to wait between attempts.
        timeout (float): Per-request timeout in seconds.
        fail_fast_on_mismatch (bool): Stop at the first chain id mismatch.

    Returns:
        ChainStatus: The decoded block number and chain id.

    Raises:
        InvalidInputError: If the endpoint is not an http(s) URL or a retry,
                           timeout or chain id value is out of range.
        HealthCheckExhaustedError: If every attempt failed.
    """
    options = HealthCheckOptions.build(
        endpoint=endpoint,
        expected_chain_id=expected_chain_id,
        max_attempts=max_attempts,
        retry_delay=retry_delay,
        timeout=timeout,
        fail_fast_on_mismatch=fail_fast_on_mismatch,
    )
    async with RPCClient(str(options.endpoint), timeout=options.timeout) as client:
        checker = HealthChecker(
            client,
            options.expected_chain_id,
            max_attempts=options.max_attempts,
            retry_delay=options.retry_delay,
            fail_fast_on_mismatch=options.fail_fast_on_mismatch,
        )
        return await checker.run()
