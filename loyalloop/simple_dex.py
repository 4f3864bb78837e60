"""
SimpleDEX: flat-rate swap between the native currency and LoyaltyToken.

The pool moves tokens only through the allowance callers grant it on the
ledger and tracks its reserves with manual counters.
"""
import functools
import logging

from .core import CallContext
from .dex_state import LiquidityReserveState
from .erc20 import Contract, Ownable
from .errors import LiquidityError, ReentrancyError, ValidationError

logger = logging.getLogger(__name__)

MAX_FEE_BASIS_POINTS = 1000


def non_reentrant(method):
    """Reject a call into a guarded method while another one is running."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._entered:
            raise ReentrancyError("ReentrancyGuard: reentrant call")
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False
    return wrapper


class SimpleDEX(Contract, Ownable):

    EXTERNAL_METHODS = (
        'swap_native_for_tokens', 'swap_tokens_for_native',
        'add_liquidity', 'remove_liquidity',
        'update_exchange_rate', 'update_fee',
        'emergency_withdraw',
        'transfer_ownership', 'renounce_ownership',
    )
    PAYABLE_METHODS = ('swap_native_for_tokens', 'add_liquidity')

    def __init__(self, chain, address: bytes, ctx: CallContext, token_address: bytes,
                 initial_exchange_rate: int, initial_fee_basis_points: int,
                 max_fee_basis_points: int = MAX_FEE_BASIS_POINTS):
        super().__init__(chain, address)
        if chain.get_contract(token_address) is None:
            raise ValidationError("Token address is not a deployed contract")
        if initial_exchange_rate <= 0:
            raise ValidationError("Exchange rate must be greater than 0")
        if not 0 <= initial_fee_basis_points <= max_fee_basis_points:
            raise ValidationError("Fee too high")

        self.token_address = token_address
        self.max_fee_basis_points = max_fee_basis_points
        self.state = LiquidityReserveState({
            'eth_liquidity': 0,
            'token_liquidity': 0,
            'exchange_rate': initial_exchange_rate,
            'fee_percentage': initial_fee_basis_points,
        })
        self._entered = False
        self._init_owner(ctx.sender)
        logger.info(
            f"SimpleDEX deployed at {address.hex()[:8]} for token {token_address.hex()[:8]}, "
            f"rate {self.state.current_price}, fee {initial_fee_basis_points} bps"
        )

    @property
    def token(self):
        return self.chain.get_contract(self.token_address)

    @property
    def eth_liquidity(self) -> int:
        return self.state.eth_liquidity

    @property
    def token_liquidity(self) -> int:
        return self.state.token_liquidity

    # ==========================================================================
    # SWAPS
    # ==========================================================================

    @non_reentrant
    def swap_native_for_tokens(self, ctx: CallContext) -> int:
        """Payable. Sends exchange_rate * value minus the fee in tokens."""
        if ctx.value <= 0:
            raise ValidationError("Must send native currency to swap")

        to_send, fee = self.state.get_swap_output(ctx.value, native_to_token=True)
        if self.state.token_liquidity < to_send:
            raise LiquidityError("Insufficient token liquidity")

        self.state.eth_liquidity += ctx.value
        self.state.token_liquidity -= to_send
        self.state.collected_token_fees += fee

        self.token.transfer(ctx.forward(self.address), ctx.sender, to_send)
        self._emit(
            'TokenSwap',
            user=ctx.sender,
            eth_amount=ctx.value,
            token_amount=to_send,
            is_eth_to_token=True,
        )
        logger.info(f"Swap: {ctx.value} native -> {to_send} tokens (fee {fee}) for {ctx.sender.hex()[:8]}")
        return to_send

    @non_reentrant
    def swap_tokens_for_native(self, ctx: CallContext, token_amount: int) -> int:
        """Pulls token_amount via allowance and pays native currency minus the fee."""
        if token_amount <= 0:
            raise ValidationError("Token amount must be greater than 0")

        to_send, fee = self.state.get_swap_output(token_amount, native_to_token=False)
        if self.state.eth_liquidity < to_send:
            raise LiquidityError("Insufficient native liquidity")

        self.token.transfer_from(ctx.forward(self.address), ctx.sender, self.address, token_amount)

        self.state.token_liquidity += token_amount
        self.state.eth_liquidity -= to_send
        self.state.collected_native_fees += fee

        self.chain.transfer_native(self.address, ctx.sender, to_send, ctx)
        self._emit(
            'TokenSwap',
            user=ctx.sender,
            eth_amount=to_send,
            token_amount=token_amount,
            is_eth_to_token=False,
        )
        logger.info(f"Swap: {token_amount} tokens -> {to_send} native (fee {fee}) for {ctx.sender.hex()[:8]}")
        return to_send

    def calculate_swap(self, input_amount: int, eth_to_token: bool) -> tuple[int, int]:
        """Preview (output_amount, fee_amount) without touching state."""
        return self.state.get_swap_output(input_amount, native_to_token=eth_to_token)

    # ==========================================================================
    # LIQUIDITY
    # ==========================================================================

    @non_reentrant
    def add_liquidity(self, ctx: CallContext, token_amount: int):
        """Payable. Deposits native value plus token_amount pulled via allowance."""
        if ctx.value <= 0:
            raise ValidationError("Must send native currency")
        if token_amount <= 0:
            raise ValidationError("Token amount must be greater than 0")

        self.token.transfer_from(ctx.forward(self.address), ctx.sender, self.address, token_amount)

        self.state.eth_liquidity += ctx.value
        self.state.token_liquidity += token_amount
        self._emit('LiquidityAdded', provider=ctx.sender, eth_amount=ctx.value, token_amount=token_amount)
        logger.info(f"Liquidity added by {ctx.sender.hex()[:8]}: {ctx.value} native + {token_amount} tokens")

    @non_reentrant
    def remove_liquidity(self, ctx: CallContext, eth_amount: int, token_amount: int):
        self.only_owner(ctx)
        if eth_amount < 0 or token_amount < 0:
            raise ValidationError("Amounts cannot be negative")
        if eth_amount > self.state.eth_liquidity:
            raise LiquidityError("Insufficient native liquidity")
        if token_amount > self.state.token_liquidity:
            raise LiquidityError("Insufficient token liquidity")

        self.state.eth_liquidity -= eth_amount
        self.state.token_liquidity -= token_amount

        if token_amount:
            self.token.transfer(ctx.forward(self.address), self.owner, token_amount)
        if eth_amount:
            self.chain.transfer_native(self.address, self.owner, eth_amount, ctx)
        self._emit('LiquidityRemoved', provider=self.owner, eth_amount=eth_amount, token_amount=token_amount)
        logger.info(f"Liquidity removed: {eth_amount} native + {token_amount} tokens")

    # ==========================================================================
    # ADMINISTRATION
    # ==========================================================================

    def update_exchange_rate(self, ctx: CallContext, new_rate: int):
        self.only_owner(ctx)
        if new_rate <= 0:
            raise ValidationError("Exchange rate must be greater than 0")
        self.state.exchange_rate = new_rate
        self._emit('ExchangeRateUpdated', new_rate=new_rate)

    def update_fee(self, ctx: CallContext, new_fee: int):
        self.only_owner(ctx)
        if new_fee < 0 or new_fee > self.max_fee_basis_points:
            raise ValidationError("Fee too high")
        self.state.fee_percentage = new_fee
        self._emit('FeeUpdated', new_fee=new_fee)

    @non_reentrant
    def emergency_withdraw(self, ctx: CallContext):
        """Sweep actual balances to the owner and zero both counters."""
        self.only_owner(ctx)
        native_balance = self.chain.get_native_balance(self.address)
        token_balance = self.token.balance_of(self.address)

        self.state.eth_liquidity = 0
        self.state.token_liquidity = 0

        if token_balance:
            self.token.transfer(ctx.forward(self.address), self.owner, token_balance)
        if native_balance:
            self.chain.transfer_native(self.address, self.owner, native_balance, ctx)
        self._emit('EmergencyWithdrawal', native_amount=native_balance, token_amount=token_balance)
        logger.warning(
            f"Emergency withdrawal from {self.address.hex()[:8]}: "
            f"{native_balance} native, {token_balance} tokens"
        )

    # ==========================================================================
    # VIEWS
    # ==========================================================================

    def get_dex_status(self) -> tuple[int, int, int, int]:
        """(eth_liquidity, token_liquidity, exchange_rate, fee_percentage)"""
        return (
            self.state.eth_liquidity,
            self.state.token_liquidity,
            self.state.exchange_rate,
            self.state.fee_percentage,
        )

    def get_fee_totals(self) -> tuple[int, int]:
        """(collected_native_fees, collected_token_fees)"""
        return self.state.collected_native_fees, self.state.collected_token_fees

    def get_reserve_drift(self) -> tuple[int, int]:
        """Actual balances minus tracked counters, per asset."""
        return (
            self.chain.get_native_balance(self.address) - self.state.eth_liquidity,
            self.token.balance_of(self.address) - self.state.token_liquidity,
        )

    def to_dict(self) -> dict:
        return {
            'owner': self.owner,
            'token_address': self.token_address,
            'max_fee_basis_points': self.max_fee_basis_points,
            'state': self.state.to_dict(),
        }

    def load_dict(self, data: dict):
        self.owner = data['owner']
        self.token_address = data['token_address']
        self.max_fee_basis_points = data['max_fee_basis_points']
        self.state = LiquidityReserveState(data['state'])
