"""
Supply counters and emission parameters of the loyalty ledger.
"""
from decimal import Decimal


class TokenomicsState:
    """
    Tracks token emission and destruction for the ledger.

    total_minted and total_burned only ever grow; their difference must
    equal the live ERC-20 total supply after every call.
    """

    def __init__(self, data: dict = None):
        """
        Initialize tokenomics state.

        Args:
            data: Dict with supply counters and emission parameters
        """
        if data is None:
            data = {
                'total_minted': 0,
                'total_burned': 0,
                'emission_rate': 1,
                'unit_value': 3,
            }

        self.total_minted = int(data['total_minted'])
        self.total_burned = int(data['total_burned'])
        self.emission_rate = int(data['emission_rate'])
        self.unit_value = int(data['unit_value'])
        self._validate()

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.
        """
        return {
            'total_minted': self.total_minted,
            'total_burned': self.total_burned,
            'emission_rate': self.emission_rate,
            'unit_value': self.unit_value,
        }

    @property
    def circulating_supply(self) -> int:
        """Tokens minted and not yet burned."""
        return self.total_minted - self.total_burned

    def tokens_for_spend(self, amount_spent: int, token_unit: int) -> int:
        """
        Tokens (in smallest units) earned for an off-chain spend.

        Formula: floor(amount_spent / unit_value) * emission_rate * token_unit
        """
        return (amount_spent // self.unit_value) * self.emission_rate * token_unit

    def record_mint(self, amount: int):
        self.total_minted += amount

    def record_burn(self, amount: int):
        self.total_burned += amount

    def __repr__(self) -> str:
        """String representation for debugging."""
        from loyalloop.loyalty_token import TOKEN_UNIT

        supply_tokens = Decimal(self.circulating_supply) / Decimal(TOKEN_UNIT)

        return (
            f"TokenomicsState("
            f"minted={self.total_minted}, "
            f"burned={self.total_burned}, "
            f"circulating={supply_tokens} tokens, "
            f"rate={self.emission_rate}/{self.unit_value})"
        )

    def _validate(self):
        """Ensure state consistency."""
        if self.total_minted < 0 or self.total_burned < 0:
            raise ValueError("Minted/burned cannot be negative")

        if self.total_burned > self.total_minted:
            raise ValueError("Burned cannot exceed minted")

        if self.emission_rate <= 0 or self.unit_value <= 0:
            raise ValueError("Emission rate and unit value must be positive")
