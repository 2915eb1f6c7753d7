# nodecheck/__main__.py
import asyncio
from typing import Optional

import typer
from loguru import logger

from nodecheck.config import settings
from nodecheck.errors import (
    ExitCode,
    HealthCheckExhaustedError,
    InvalidInputError,
    NetworkMismatchError,
)
from nodecheck.health_checker import run_health_check
from nodecheck.models import HealthCheckOptions
from nodecheck.utils.log import setup_logging

app = typer.Typer(help="Ethereum execution client RPC health check")

BANNER = "═" * 47


def exit_code_for(exc: BaseException) -> ExitCode:
    """
    Map a failure raised by a health check run to a process exit code.

    Args:
        exc (BaseException): The exception that ended the run.

    Returns:
        ExitCode: The exit code to report.
    """
    if isinstance(exc, InvalidInputError):
        return ExitCode.INVALID_ARGS
    if isinstance(exc, NetworkMismatchError):
        return ExitCode.NETWORK_MISMATCH
    if isinstance(exc, HealthCheckExhaustedError):
        if isinstance(exc.last_error, NetworkMismatchError):
            return ExitCode.NETWORK_MISMATCH
        return ExitCode.HEALTH_CHECK_FAILED
    if isinstance(exc, asyncio.TimeoutError):
        return ExitCode.HEALTH_CHECK_FAILED
    return ExitCode.GENERIC_ERROR


@app.command()
def main(
    rpc_url: Optional[str] = typer.Argument(
        None,
        help="JSON-RPC endpoint, e.g. http://127.0.0.1:8545",
    ),
    chain_id: str = typer.Argument(
        str(settings.expected_chain_id),
        help="Expected chain id (decimal)",
    ),
    node_name: str = typer.Argument(settings.node_name, help="Node label"),
    max_attempts: int = typer.Option(settings.max_attempts, "--max-attempts"),
    retry_delay: float = typer.Option(
        settings.retry_delay,
        "--retry-delay",
        help="Seconds to wait between attempts",
    ),
    timeout: float = typer.Option(
        settings.http_timeout,
        "--timeout",
        help="Per-request timeout in seconds",
    ),
    deadline: Optional[float] = typer.Option(
        None,
        "--deadline",
        help="Overall time budget in seconds for all attempts",
    ),
    fail_fast_on_mismatch: bool = typer.Option(
        settings.fail_fast_on_mismatch,
        "--fail-fast-on-mismatch",
        help="Do not retry when the node reports another chain id",
    ),
    debug: bool = typer.Option(settings.debug, "--debug"),
) -> None:
    """Check that an Ethereum node's RPC endpoint is live and on the expected chain."""
    setup_logging(debug)

    logger.info(BANNER)
    logger.info("Ethereum Node Health Check")
    logger.info(BANNER)

    rpc_url = rpc_url or settings.rpc_url
    if not rpc_url:
        logger.error("Missing required argument: RPC_URL")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    try:
        options = HealthCheckOptions.build(
            endpoint=rpc_url,
            expected_chain_id=chain_id,
            node_name=node_name,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            timeout=timeout,
            fail_fast_on_mismatch=fail_fast_on_mismatch,
        )
    except InvalidInputError as exc:
        logger.error(str(exc))
        raise typer.Exit(ExitCode.INVALID_ARGS)

    logger.info(
        f"Configuration: RPC_URL={options.endpoint}, "
        f"CHAIN_ID={options.expected_chain_id}, NODE_NAME={options.node_name}",
    )

    try:
        status = asyncio.run(
            asyncio.wait_for(
                run_health_check(
                    str(options.endpoint),
                    options.expected_chain_id,
                    max_attempts=options.max_attempts,
                    retry_delay=options.retry_delay,
                    timeout=options.timeout,
                    fail_fast_on_mismatch=options.fail_fast_on_mismatch,
                ),
                timeout=deadline,
            ),
        )
    except asyncio.TimeoutError:
        logger.error(f"Health check exceeded the {deadline}s deadline")
        raise typer.Exit(ExitCode.HEALTH_CHECK_FAILED)
    except (HealthCheckExhaustedError, NetworkMismatchError) as exc:
        logger.error(f"{options.node_name}: {exc}")
        raise typer.Exit(exit_code_for(exc))
    except Exception as exc:
        logger.exception(f"{options.node_name}: unexpected error: {exc}")
        raise typer.Exit(ExitCode.GENERIC_ERROR)

    logger.info(BANNER)
    logger.info(f"Node health check PASSED: {options.node_name}")
    logger.info(f"  Block: {status.block_number}")
    logger.info(f"  Chain ID: {status.chain_id}")
    logger.info(f"Node is ready for use at: {options.endpoint}")
    logger.info(BANNER)


if __name__ == "__main__":
    app()
