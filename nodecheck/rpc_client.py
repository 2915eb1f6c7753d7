import asyncio
import itertools
import json
from types import TracebackType
from typing import Any, List, Optional, Type

import aiohttp
from loguru import logger
from pydantic import ValidationError

from nodecheck.config import settings
from nodecheck.errors import ProtocolError, TransportError
from nodecheck.models import JsonRpcRequest, QuantityResponse


class RPCClient:
    """RPCClient is an asynchronous JSON-RPC client for an Ethereum execution client node."""  # noqa: E501

    def __init__(
        self,
        rpc_endpoint: str,
        timeout: float = settings.http_timeout,
    ) -> None:
        """
        Initialize the RPC client.

        Args:
            rpc_endpoint (str): The endpoint URL for the RPC server.
            timeout (float): Total time allowed for a single request, in seconds.

        Attributes:
            rpc_endpoint (str): The endpoint URL for the RPC server.
            timeout (aiohttp.ClientTimeout): Timeout applied to every request.
            session (Optional[aiohttp.ClientSession]): The http session, created on
                                                       first use.
            _id_counter (itertools.count): Counter for generating unique request IDs.
        """
        self.rpc_endpoint = str(rpc_endpoint)
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

        # Incrementing counter for unique IDs
        self._id_counter = itertools.count(1)

    async def __aenter__(self) -> "RPCClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """
        Asynchronously closes the session.

        This method should be called to properly close the session and release any
        resources associated with it. Calling it more than once is harmless.
        """
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self.session

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Makes a single asynchronous JSON-RPC call.

        Retrying is left to the caller, so a failure is raised as soon as it is seen.

        Args:
            method (str): The name of the RPC method to call.
            params (Optional[List[Any]]): The parameters to pass to the RPC method.
                                          Defaults to None.

        Returns:
            Any: The ``result`` member of the JSON-RPC response.

        Raises:
            TransportError: If the request fails, times out or the server answers
                            with a non-success HTTP status.
            ProtocolError: If the body is not a JSON-RPC response carrying a result,
                           or the node returned a JSON-RPC error object.
        """
        payload = JsonRpcRequest(
            method=method,
            params=params or [],
            id=next(self._id_counter),
        ).model_dump()
        logger.debug(f"RPC request to {self.rpc_endpoint}: {payload}")

        try:
            async with self._get_session().post(
                self.rpc_endpoint,
                json=payload,
            ) as response:

                # Check for HTTP errors
                if not 200 <= response.status < 300:
                    raise TransportError(
                        f"RPC call {method} failed with HTTP status {response.status}",
                        method,
                    )

                body = await response.read()

        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(
                f"RPC call {method} failed: {exc.__class__.__name__}: {exc}",
                method,
            ) from exc

        logger.debug(
            f"RPC response from {self.rpc_endpoint}: {body.decode(errors='replace')}",
        )

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise ProtocolError(
                f"RPC call {method} returned a non-JSON body",
                method,
            ) from exc

        if not isinstance(data, dict):
            raise ProtocolError(
                f"RPC call {method} returned a non-object JSON body",
                method,
            )

        # Check for JSON-RPC errors
        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                message = str(error.get("message", error))
            else:
                message = str(error)
            raise ProtocolError(
                f"RPC error from {method}: {message}",
                method,
                rpc_message=message,
            )

        if data.get("result") is None:
            raise ProtocolError(f"No result returned from {method}", method)

        return data["result"]

    async def _call_quantity(self, method: str) -> int:
        """
        Calls a method whose result is a hex quantity and decodes it.

        Args:
            method (str): The name of the RPC method to call.

        Returns:
            int: The decoded result.

        Raises:
            ProtocolError: If the result is not a valid hex quantity.
        """
        result = await self._call(method)
        if not isinstance(result, str):
            raise ProtocolError(
                f"Invalid hex result from {method}: {result!r}",
                method,
            )
        try:
            return QuantityResponse.model_validate({"result": result}).result
        except ValidationError as exc:
            raise ProtocolError(
                f"Invalid hex result from {method}: {result!r}",
                method,
            ) from exc

    async def get_latest_block_number(self) -> int:
        """
        Asynchronously retrieves the latest block number from the node.

        This method calls the "eth_blockNumber" RPC method to get the latest block
        number in hexadecimal format and converts it to an integer.

        Returns:
            int: The latest block number as an integer.
        """
        return await self._call_quantity("eth_blockNumber")

    async def get_chain_id(self) -> int:
        """
        Asynchronously retrieves the chain id served by the node.

        Returns:
            int: The chain id as an integer.
        """
        return await self._call_quantity("eth_chainId")
