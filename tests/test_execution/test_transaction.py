"""
Tests for TransactionExecutor.

Tests cover:
- Network validation before any other provider call
- Gas estimation buffer, bound and fallback
- Recipient resolution
- Submission failures and receipt outcomes
- Per-binding in-flight policies
- End-to-end mint
"""

import asyncio
import logging

import pytest
from eth_abi import decode
from pydantic import ValidationError

from conftest import (
    AMOY_CHAIN_ID,
    GOERLI_CHAIN_ID,
    OTHER_ADDRESS,
    SELF_ADDRESS,
    TOKEN_ABI,
    TOKEN_ADDRESS,
    TX_HASH,
    FakeProvider,
    RejectingProvider,
)
from walletbridge.abi import normalize
from walletbridge.binding import bind
from walletbridge.config import Settings
from walletbridge.errors import InvalidRecipientError, ProviderRpcError
from walletbridge.execution import SendOptions, TransactionExecutor, resolve_recipient, send
from walletbridge.models import (
    Confirmed,
    Failed,
    FailureKind,
    RecipientMode,
    TransactionRequest,
    TxState,
)
from walletbridge.session import WalletSession
from walletbridge.utils.retry import RetryConfig


def _sent_args(provider: FakeProvider):
    data = provider.sent[-1]["data"]
    return decode(["address", "uint256"], bytes.fromhex(data[10:]))


@pytest.fixture
def executor(fast_settings) -> TransactionExecutor:
    return TransactionExecutor(
        fast_settings,
        retry=RetryConfig(
            base_delay_ms=1,
            jitter=False,
            retryable_errors=(ConnectionError, TimeoutError, ProviderRpcError),
        ),
    )


# =============================================================================
# Network validation
# =============================================================================


class TestNetworkValidation:
    @pytest.mark.asyncio
    async def test_chain_mismatch_stops_after_chain_read(self, binding, provider, executor) -> None:
        provider.chain_id = GOERLI_CHAIN_ID

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert isinstance(result, Failed)
        assert result.ok is False
        assert result.kind is FailureKind.CHAIN_MISMATCH
        assert result.details["expected_chain_id"] == AMOY_CHAIN_ID
        assert result.details["actual_chain_id"] == GOERLI_CHAIN_ID
        assert result.details["state"] == TxState.VALIDATING_NETWORK.value
        assert provider.methods() == ["eth_chainId"]

    @pytest.mark.asyncio
    async def test_stale_cached_chain_is_not_trusted(self, binding, provider, executor) -> None:
        # Switch without an event: the cached value still says Amoy
        provider.chain_id = GOERLI_CHAIN_ID
        assert binding.session.active_chain_id == AMOY_CHAIN_ID

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.kind is FailureKind.CHAIN_MISMATCH

    @pytest.mark.asyncio
    async def test_mismatch_logged_as_warning(self, binding, provider, executor, caplog) -> None:
        provider.chain_id = GOERLI_CHAIN_ID

        with caplog.at_level(logging.WARNING, logger="walletbridge"):
            await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert any(r.levelno == logging.WARNING and "Chain mismatch" in r.getMessage() for r in caplog.records)


# =============================================================================
# Gas
# =============================================================================


class TestGasLimit:
    @pytest.mark.asyncio
    async def test_estimate_with_buffer(self, binding, provider, executor) -> None:
        provider.gas_estimate = 100_000

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert isinstance(result, Confirmed)
        assert result.gas_limit == 120_000
        assert provider.sent[0]["gas"] == hex(120_000)

    @pytest.mark.asyncio
    async def test_estimate_capped_at_bound(self, binding, provider, executor) -> None:
        provider.gas_estimate = 100_000

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100], SendOptions(gas_limit=110_000))

        assert result.gas_limit == 110_000

    @pytest.mark.asyncio
    async def test_default_bound_caps_large_estimate(self, binding, provider, executor) -> None:
        provider.gas_estimate = 290_000

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.gas_limit == 300_000

    @pytest.mark.asyncio
    async def test_estimation_failure_falls_back_to_bound(self, binding, provider, executor, caplog) -> None:
        provider.estimate_error = ProviderRpcError(-32000, "gas required exceeds allowance")

        with caplog.at_level(logging.WARNING, logger="walletbridge"):
            result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert isinstance(result, Confirmed)
        assert result.gas_limit == 300_000
        assert provider.sent[0]["gas"] == hex(300_000)
        (record,) = [r for r in caplog.records if "Gas estimation failed" in r.getMessage()]
        assert record.levelno == logging.WARNING
        assert record.fallback_gas_limit == 300_000
        assert record.code == "GAS_ESTIMATION_FAILED"
        assert record.error == "gas required exceeds allowance"

    @pytest.mark.asyncio
    async def test_estimation_failure_uses_caller_bound(self, binding, provider, executor) -> None:
        provider.estimate_error = ProviderRpcError(3, "execution reverted")

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100], SendOptions(gas_limit=80_000))

        assert result.gas_limit == 80_000

    @pytest.mark.asyncio
    async def test_settings_bound(self, binding, provider) -> None:
        provider.estimate_error = ConnectionError("reset")
        executor = TransactionExecutor(Settings(default_gas_limit=200_000, poll_interval=0.01))

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.gas_limit == 200_000


# =============================================================================
# Recipient
# =============================================================================


class TestRecipient:
    @pytest.mark.asyncio
    async def test_self_recipient(self, binding, provider, executor) -> None:
        options = SendOptions(recipient=RecipientMode.SELF)

        result = await executor.send(binding, "mint", [100], options)

        assert result.ok is True
        to, amount = _sent_args(provider)
        assert to.lower() == SELF_ADDRESS
        assert amount == 100

    @pytest.mark.asyncio
    async def test_other_recipient(self, binding, provider, executor) -> None:
        options = SendOptions(recipient=RecipientMode.OTHER, recipient_address=OTHER_ADDRESS)

        result = await executor.send(binding, "transfer", [5], options)

        assert result.ok is True
        to, amount = _sent_args(provider)
        assert to.lower() == OTHER_ADDRESS
        assert amount == 5

    @pytest.mark.asyncio
    async def test_recipient_position(self, provider, connected_session, executor) -> None:
        raw = [
            {
                "type": "function",
                "name": "grant",
                "inputs": [{"name": "amount", "type": "uint256"}, {"name": "to", "type": "address"}],
                "outputs": [],
                "stateMutability": "nonpayable",
            }
        ]
        binding = bind(TOKEN_ADDRESS, normalize(raw), connected_session, AMOY_CHAIN_ID)
        options = SendOptions(recipient=RecipientMode.SELF, recipient_position=1)

        await executor.send(binding, "grant", [7], options)

        amount, to = decode(["uint256", "address"], bytes.fromhex(provider.sent[0]["data"][10:]))
        assert (amount, to.lower()) == (7, SELF_ADDRESS)

    @pytest.mark.asyncio
    async def test_other_without_address(self, binding, provider, executor) -> None:
        result = await executor.send(binding, "transfer", [5], SendOptions(recipient=RecipientMode.OTHER))

        assert result.kind is FailureKind.UNKNOWN
        assert "recipient" in result.reason
        assert "eth_sendTransaction" not in provider.methods()

    @pytest.mark.asyncio
    async def test_strict_validation(self, binding, provider, executor) -> None:
        options = SendOptions(
            recipient=RecipientMode.OTHER,
            recipient_address="0xF39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
            validate_recipient=True,
        )

        result = await executor.send(binding, "transfer", [5], options)

        assert result.kind is FailureKind.UNKNOWN
        assert provider.sent == []

    @pytest.mark.asyncio
    async def test_resolve_recipient(self, connected_session) -> None:
        assert resolve_recipient(connected_session, RecipientMode.SELF) == SELF_ADDRESS
        assert resolve_recipient(connected_session, RecipientMode.OTHER, OTHER_ADDRESS) == OTHER_ADDRESS

    def test_resolve_self_without_account(self, session) -> None:
        with pytest.raises(InvalidRecipientError):
            resolve_recipient(session, RecipientMode.SELF)

    @pytest.mark.asyncio
    async def test_resolve_zero_address_strict(self, connected_session) -> None:
        with pytest.raises(InvalidRecipientError, match="zero address"):
            resolve_recipient(connected_session, RecipientMode.OTHER, "0x" + "0" * 40, validate=True)


# =============================================================================
# Preconditions
# =============================================================================


class TestPreconditions:
    @pytest.mark.asyncio
    async def test_unknown_method(self, binding, provider, executor) -> None:
        result = await executor.send(binding, "burn", [1])

        assert result.kind is FailureKind.METHOD_NOT_FOUND
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_constructor_cannot_be_sent(self, binding, provider, executor) -> None:
        result = await executor.send(binding, "constructor", [1])

        assert result.kind is FailureKind.METHOD_NOT_FOUND
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_not_connected(self, session, provider, executor) -> None:
        binding = bind(TOKEN_ADDRESS, normalize(TOKEN_ABI), session, AMOY_CHAIN_ID)

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 1])

        assert result.kind is FailureKind.PROVIDER_UNAVAILABLE
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_value_on_nonpayable(self, binding, provider, executor) -> None:
        result = await executor.send(binding, "mint", [SELF_ADDRESS, 1], SendOptions(value=1))

        assert result.kind is FailureKind.UNKNOWN
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_value_on_payable(self, binding, provider, executor) -> None:
        result = await executor.send(binding, "deposit", [], SendOptions(value=10**18))

        assert result.ok is True
        assert provider.sent[0]["value"] == hex(10**18)

    @pytest.mark.asyncio
    async def test_bad_arguments(self, binding, provider, executor) -> None:
        result = await executor.send(binding, "mint", ["nope", 1])

        assert result.kind is FailureKind.UNKNOWN
        assert provider.methods() == ["eth_chainId"]

    def test_options_validated(self) -> None:
        with pytest.raises(ValidationError):
            SendOptions(gas_limit=0)
        with pytest.raises(ValidationError):
            SendOptions(in_flight="drop")


# =============================================================================
# Submission and receipt
# =============================================================================


class TestSubmissionOutcomes:
    @pytest.mark.asyncio
    async def test_user_rejects_signature(self, binding, provider, executor) -> None:
        provider.send_error = ProviderRpcError(4001, "User denied transaction signature.")

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.kind is FailureKind.USER_REJECTED
        assert result.tx_hash is None
        assert result.details["state"] == TxState.SUBMITTING.value

    @pytest.mark.asyncio
    async def test_revert_on_submission(self, binding, provider, executor) -> None:
        provider.send_error = ProviderRpcError(-32603, "execution reverted: Ownable: caller is not the owner")

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.kind is FailureKind.CALL_REVERTED

    @pytest.mark.asyncio
    async def test_other_submission_error(self, binding, provider, executor) -> None:
        provider.send_error = ProviderRpcError(-32000, "nonce too low")

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.kind is FailureKind.UNKNOWN
        assert result.reason == "nonce too low"

    @pytest.mark.asyncio
    async def test_receipt_status_zero(self, binding, provider, executor) -> None:
        provider.receipt_status = 0

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.kind is FailureKind.CALL_REVERTED
        assert result.tx_hash == TX_HASH
        assert result.details["state"] == TxState.PENDING.value

    @pytest.mark.asyncio
    async def test_polls_until_mined(self, binding, provider, executor) -> None:
        provider.pending_polls = 2

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.ok is True
        assert provider.methods().count("eth_getTransactionReceipt") == 3

    @pytest.mark.asyncio
    async def test_transient_receipt_errors_retried(self, binding, provider, executor) -> None:
        provider.receipt_errors = [ConnectionError("reset"), ProviderRpcError(-32000, "header not found")]

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.ok is True

    @pytest.mark.asyncio
    async def test_receipt_timeout(self, binding, provider, executor) -> None:
        provider.never_mined = True

        result = await executor.send(binding, "mint", [SELF_ADDRESS, 100], SendOptions(receipt_timeout=0.05))

        assert result.kind is FailureKind.TIMEOUT
        assert result.tx_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_unknown(self, binding, provider, executor) -> None:
        class OddProvider(FakeProvider):
            async def request(self, method, params=None):
                if method == "eth_getTransactionReceipt":
                    return "0x1"
                return await super().request(method, params)

        odd = OddProvider()
        session = WalletSession(odd)
        await session.connect()
        odd_binding = bind(TOKEN_ADDRESS, binding.methods, session, AMOY_CHAIN_ID)

        result = await executor.send(odd_binding, "mint", [SELF_ADDRESS, 100])

        assert result.kind is FailureKind.UNKNOWN
        assert result.tx_hash == TX_HASH
        assert result.details["exception"] == "AttributeError"


# =============================================================================
# In-flight guard
# =============================================================================


async def _wait_for_submission(provider: FakeProvider) -> None:
    while "eth_sendTransaction" not in provider.methods():
        await asyncio.sleep(0)


class TestInFlight:
    @pytest.mark.asyncio
    async def test_reject_second_send(self, binding, provider, executor) -> None:
        provider.send_gate = asyncio.Event()
        first = asyncio.create_task(executor.send(binding, "mint", [SELF_ADDRESS, 1]))
        await asyncio.wait_for(_wait_for_submission(provider), timeout=1)

        second = await executor.send(binding, "mint", [SELF_ADDRESS, 2])
        provider.send_gate.set()
        first_result = await first

        assert second.kind is FailureKind.IN_FLIGHT
        assert first_result.ok is True
        assert len(provider.sent) == 1

    @pytest.mark.asyncio
    async def test_queue_second_send(self, binding, provider, executor) -> None:
        provider.send_gate = asyncio.Event()
        first = asyncio.create_task(executor.send(binding, "mint", [SELF_ADDRESS, 1]))
        await asyncio.wait_for(_wait_for_submission(provider), timeout=1)

        second = asyncio.create_task(
            executor.send(binding, "mint", [SELF_ADDRESS, 2], SendOptions(in_flight="queue"))
        )
        await asyncio.sleep(0.02)
        assert not second.done()

        provider.send_gate.set()
        results = await asyncio.gather(first, second)

        assert all(r.ok for r in results)
        assert [decode(["address", "uint256"], bytes.fromhex(tx["data"][10:]))[1] for tx in provider.sent] == [1, 2]

    @pytest.mark.asyncio
    async def test_other_bindings_not_blocked(self, binding, provider, connected_session, executor) -> None:
        provider.send_gate = asyncio.Event()
        other = bind(TOKEN_ADDRESS, binding.methods, connected_session, AMOY_CHAIN_ID)
        first = asyncio.create_task(executor.send(binding, "mint", [SELF_ADDRESS, 1]))
        await asyncio.wait_for(_wait_for_submission(provider), timeout=1)

        second = asyncio.create_task(executor.send(other, "mint", [SELF_ADDRESS, 2]))
        provider.send_gate.set()
        results = await asyncio.gather(first, second)

        assert [r.kind if isinstance(r, Failed) else None for r in results] == [None, None]

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, binding, provider, executor) -> None:
        provider.send_error = ProviderRpcError(4001, "User denied transaction signature.")
        await executor.send(binding, "mint", [SELF_ADDRESS, 1])

        assert binding.send_lock.locked() is False


# =============================================================================
# End to end
# =============================================================================


MINT_ONLY_ABI = {
    "Methods": {
        "mint": {
            "Name": "mint",
            "Inputs": [
                {"Name": "to", "Type": {"T": 7, "Size": 20}},
                {"Name": "amount", "Type": {"T": 1, "Size": 256}},
            ],
            "Outputs": [],
            "StateMutability": "nonpayable",
            "Constant": False,
            "Payable": False,
        }
    }
}


class TestMintEndToEnd:
    @pytest.mark.asyncio
    async def test_mint_confirmed(self, fast_settings) -> None:
        provider = FakeProvider()
        session = WalletSession(provider)
        await session.connect()
        binding = bind(TOKEN_ADDRESS, normalize(MINT_ONLY_ABI), session, AMOY_CHAIN_ID)
        states = []
        executor = TransactionExecutor(fast_settings, on_state=lambda state, _ctx: states.append(state))

        result = await executor.send(binding, "mint", [session.account_address, 100])

        assert isinstance(result, Confirmed)
        assert result.tx_hash == TX_HASH
        assert result.receipt["status"] == "0x1"
        assert states == [
            TxState.VALIDATING_NETWORK,
            TxState.ESTIMATING_GAS,
            TxState.SUBMITTING,
            TxState.PENDING,
            TxState.CONFIRMED,
        ]
        assert provider.methods()[2:] == [
            "eth_chainId",
            "eth_estimateGas",
            "eth_sendTransaction",
            "eth_getTransactionReceipt",
        ]
        sent = provider.sent[0]
        assert sent["from"] == SELF_ADDRESS
        assert sent["to"] == TOKEN_ADDRESS
        assert sent["data"].startswith("0x40c10f19")

    @pytest.mark.asyncio
    async def test_mint_rejected(self, fast_settings) -> None:
        session = WalletSession(RejectingProvider())
        await session.connect()
        binding = bind(TOKEN_ADDRESS, normalize(MINT_ONLY_ABI), session, AMOY_CHAIN_ID)
        states = []
        executor = TransactionExecutor(fast_settings, on_state=lambda state, _ctx: states.append(state))

        result = await executor.send(binding, "mint", [session.account_address, 100])

        assert isinstance(result, Failed)
        assert result.kind is FailureKind.USER_REJECTED
        assert states[-1] is TxState.FAILED

    @pytest.mark.asyncio
    async def test_submit_request(self, binding, provider, executor) -> None:
        request = TransactionRequest(method="mint", args=[SELF_ADDRESS, 100], gas_limit=50_000)

        result = await executor.submit(binding, request)

        assert result.gas_limit == 50_000

    @pytest.mark.asyncio
    async def test_module_shortcut(self, binding, provider) -> None:
        result = await send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.ok is True

    @pytest.mark.asyncio
    async def test_observer_errors_do_not_escape(self, binding, provider, fast_settings) -> None:
        def broken(_state, _ctx):
            raise RuntimeError("observer bug")

        result = await TransactionExecutor(fast_settings, on_state=broken).send(binding, "mint", [SELF_ADDRESS, 100])

        assert result.ok is True


class TestOverloadedMethods:
    @pytest.mark.asyncio
    async def test_send_overload_encodes_solidity_selector(self, provider, connected_session, executor) -> None:
        raw = [
            {
                "type": "function",
                "name": "safeTransferFrom",
                "inputs": [
                    {"name": "from", "type": "address"},
                    {"name": "to", "type": "address"},
                    {"name": "tokenId", "type": "uint256"},
                ],
                "outputs": [],
                "stateMutability": "nonpayable",
            },
            {
                "type": "function",
                "name": "safeTransferFrom",
                "inputs": [
                    {"name": "from", "type": "address"},
                    {"name": "to", "type": "address"},
                    {"name": "tokenId", "type": "uint256"},
                    {"name": "data", "type": "bytes"},
                ],
                "outputs": [],
                "stateMutability": "nonpayable",
            },
        ]
        nft = bind(TOKEN_ADDRESS, normalize(raw), connected_session, AMOY_CHAIN_ID)

        result = await executor.send(nft, "safeTransferFrom0", [SELF_ADDRESS, OTHER_ADDRESS, 7, b""])

        assert result.ok is True
        assert provider.sent[0]["data"].startswith("0xb88d4fde")
