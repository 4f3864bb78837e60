"""
Flat-rate exchange pool state.
Swaps use a fixed exchange rate minus a basis-point fee, not a curve.
"""
from decimal import Decimal

RATE_SCALE = 10 ** 18
BASIS_POINTS = 10_000


class LiquidityReserveState:
    """
    Represents the exchange pool's tracked reserves and pricing parameters.

    eth_liquidity and token_liquidity are counters maintained by the pool
    operations, not balances read from the ledger. The swap fee stays in
    the pool: the full input is added to one counter and only the net
    output is taken from the other, so the counters remain backed by
    real balances. Fees are also accumulated separately for reporting.
    """

    def __init__(self, data: dict = None):
        """
        Initialize reserve state.

        Args:
            data: Dict with liquidity counters, rate, fee and fee totals
        """
        if data is None:
            data = {
                'eth_liquidity': 0,
                'token_liquidity': 0,
                'exchange_rate': 0,
                'fee_percentage': 0,
            }

        self.eth_liquidity = int(data['eth_liquidity'])
        self.token_liquidity = int(data['token_liquidity'])
        self.exchange_rate = int(data['exchange_rate'])
        self.fee_percentage = int(data['fee_percentage'])
        self.collected_token_fees = int(data.get('collected_token_fees', 0))
        self.collected_native_fees = int(data.get('collected_native_fees', 0))

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.
        """
        return {
            'eth_liquidity': self.eth_liquidity,
            'token_liquidity': self.token_liquidity,
            'exchange_rate': self.exchange_rate,
            'fee_percentage': self.fee_percentage,
            'collected_token_fees': self.collected_token_fees,
            'collected_native_fees': self.collected_native_fees,
        }

    @property
    def current_price(self) -> Decimal:
        """Tokens per whole native unit."""
        return Decimal(self.exchange_rate) / Decimal(RATE_SCALE)

    def fee_for(self, gross_amount: int) -> int:
        """Fee in the output asset; floors to zero on dust amounts."""
        return gross_amount * self.fee_percentage // BASIS_POINTS

    def get_swap_output(self, input_amount: int, native_to_token: bool) -> tuple[int, int]:
        """
        Calculate swap output and fee at the flat exchange rate.

        Formula (native -> token): gross = input * rate / 1e18
        Formula (token -> native): gross = input * 1e18 / rate
        Then fee = gross * fee_percentage / 10000, output = gross - fee.

        Args:
            input_amount: Amount of input asset (in smallest unit)
            native_to_token: True when paying native currency for tokens

        Returns:
            (output_amount, fee_amount), both in the output asset
        """
        if input_amount <= 0:
            return 0, 0

        if native_to_token:
            gross = input_amount * self.exchange_rate // RATE_SCALE
        else:
            if self.exchange_rate == 0:
                return 0, 0
            gross = input_amount * RATE_SCALE // self.exchange_rate

        fee = self.fee_for(gross)
        return gross - fee, fee

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"LiquidityReserveState("
            f"eth_liquidity={self.eth_liquidity}, "
            f"token_liquidity={self.token_liquidity}, "
            f"rate={self.current_price}, "
            f"fee_bps={self.fee_percentage})"
        )
