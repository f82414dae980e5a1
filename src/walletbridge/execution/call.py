"""Read-only contract calls.

CallExecutor performs ``eth_call`` against a ContractBinding. It never
estimates gas or submits transactions.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from walletbridge.abi.codec import AbiCodecError, decode_result, encode_call
from walletbridge.binding import ContractBinding
from walletbridge.errors import (
    InvalidArgumentsError,
    NotReadableError,
    ProviderUnavailableError,
    UnknownProviderError,
    from_provider_error,
)
from walletbridge.utils.logging import get_logger

_logger = get_logger(__name__)


class CallExecutor:
    """Executes ``pure``/``view`` methods and decodes their results."""

    def __init__(self, block: str = "latest") -> None:
        self.block = block

    async def call(
        self,
        binding: ContractBinding,
        method: str,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Call a read-only method.

        Args:
            binding: Contract to call
            method: Method name from the binding's method table
            args: Positional arguments

        Returns:
            Decoded return value: the bare value for a single output,
            a tuple for several, None for no outputs

        Raises:
            MethodNotFoundError: If the method is not in the table
            NotReadableError: If the method is nonpayable or payable
            ProviderUnavailableError: If the session is not connected
            InvalidArgumentsError: If args do not match the inputs
            CallRevertedError: If the contract reverts
            UnknownProviderError: For any other provider failure, or return
                data that does not decode as the declared outputs
        """
        descriptor = binding.get_method(method)
        if not descriptor.is_read_only:
            raise NotReadableError(method, descriptor.mutability.value)

        session = binding.session
        if not session.is_connected:
            raise ProviderUnavailableError("Wallet session is not connected")

        try:
            calldata = encode_call(descriptor, list(args or []))
        except AbiCodecError as e:
            raise InvalidArgumentsError(method, str(e)) from e

        call_params: Dict[str, Any] = {"to": binding.address, "data": calldata}
        if session.account_address:
            call_params["from"] = session.account_address

        _logger.debug("eth_call", extra={"contract": binding.address, "method": method})
        try:
            raw = await session.provider.request("eth_call", [call_params, self.block])
        except Exception as e:
            raise from_provider_error(e) from e

        try:
            return decode_result(descriptor, raw)
        except AbiCodecError as e:
            # Arguments were accepted; the node returned data the outputs do not describe
            raise UnknownProviderError(
                str(e),
                details={"method": method, "data": raw},
            ) from e


async def call(
    binding: ContractBinding,
    method: str,
    args: Optional[Sequence[Any]] = None,
) -> Any:
    """Module-level shortcut for ``CallExecutor().call(...)``."""
    return await CallExecutor().call(binding, method, args)
