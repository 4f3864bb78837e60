"""
LoyaltyToken: an ERC-20 ledger that mints on customer spend and burns
tokens into discount coupons.
"""
import logging
from typing import Optional

from .config import TokenConfig
from .core import CallContext
from .coupons import (
    Coupon,
    CouponRegistry,
    MAX_DISCOUNT_PERCENT,
    MAX_VALIDITY_DAYS,
    MIN_DISCOUNT_PERCENT,
    MIN_VALIDITY_DAYS,
)
from .crypto import ZERO_ADDRESS
from .erc20 import ERC20, Ownable
from .errors import AuthorizationError, CouponError, ValidationError
from .tokenomics_state import TokenomicsState

logger = logging.getLogger(__name__)

DECIMALS = 18
TOKEN_UNIT = 10 ** DECIMALS
BASIS_POINTS = 10_000


class LoyaltyToken(ERC20, Ownable):
    """
    Token ledger with emission and coupon extensions.

    The deployer becomes owner and receives the initial supply. Every
    mint and burn goes through the tokenomics counters so that
    total_minted - total_burned == total_supply() holds after each call.
    """

    EXTERNAL_METHODS = (
        'transfer', 'approve', 'transfer_from',
        'transfer_ownership', 'renounce_ownership',
        'set_emission_rate', 'set_unit_value',
        'earn_tokens', 'earn_tokens_for_self',
        'create_coupon', 'use_coupon',
    )

    def __init__(self, chain, address: bytes, ctx: CallContext, config: Optional[TokenConfig] = None):
        config = config or TokenConfig()
        super().__init__(chain, address, config.name, config.symbol, config.decimals)
        self.tokenomics = TokenomicsState({
            'total_minted': 0,
            'total_burned': 0,
            'emission_rate': config.emission_rate,
            'unit_value': config.unit_value,
        })
        self.coupon_fee_bps = config.coupon_fee_bps
        self.coupons = CouponRegistry()
        self._init_owner(ctx.sender)

        initial = config.initial_supply * self.unit
        if initial:
            self._mint_counted(ctx.sender, initial)
        logger.info(
            f"LoyaltyToken deployed at {address.hex()[:8]}: "
            f"{config.initial_supply} {config.symbol} to {ctx.sender.hex()[:8]}"
        )

    # ==========================================================================
    # EMISSION PARAMETERS
    # ==========================================================================

    @property
    def emission_rate(self) -> int:
        return self.tokenomics.emission_rate

    @property
    def unit_value(self) -> int:
        return self.tokenomics.unit_value

    def set_emission_rate(self, ctx: CallContext, rate: int):
        self.only_owner(ctx)
        if rate <= 0:
            raise ValidationError("Emission rate must be greater than 0")
        self.tokenomics.emission_rate = rate
        self._emit('EmissionRateUpdated', new_rate=rate)

    def set_unit_value(self, ctx: CallContext, unit: int):
        self.only_owner(ctx)
        if unit <= 0:
            raise ValidationError("Unit value must be greater than 0")
        self.tokenomics.unit_value = unit
        self._emit('UnitValueUpdated', new_unit_value=unit)

    # ==========================================================================
    # EMISSION
    # ==========================================================================

    def earn_tokens(self, ctx: CallContext, customer: bytes, amount_spent: int) -> int:
        """Owner mints for a customer. A spend below unit_value mints zero."""
        self.only_owner(ctx)
        if amount_spent < 0:
            raise ValidationError("Amount spent cannot be negative")
        tokens = self.tokenomics.tokens_for_spend(amount_spent, self.unit)
        self._mint_counted(customer, tokens)
        self._emit('TokensEarned', customer=customer, amount_spent=amount_spent, tokens=tokens)
        return tokens

    def earn_tokens_for_self(self, ctx: CallContext, amount_spent: int) -> int:
        if amount_spent <= 0:
            raise ValidationError("Amount spent must be greater than 0")
        if amount_spent < self.tokenomics.unit_value:
            raise ValidationError("Amount spent must be at least the unit value")
        tokens = self.tokenomics.tokens_for_spend(amount_spent, self.unit)
        self._mint_counted(ctx.sender, tokens)
        self._emit('TokensEarned', customer=ctx.sender, amount_spent=amount_spent, tokens=tokens)
        return tokens

    def _mint_counted(self, account: bytes, amount: int):
        self._mint(account, amount)
        self.tokenomics.record_mint(amount)

    def _burn_counted(self, account: bytes, amount: int):
        self._burn(account, amount)
        self.tokenomics.record_burn(amount)

    # ==========================================================================
    # COUPONS
    # ==========================================================================

    def coupon_fee(self, token_amount: int) -> int:
        """Service fee charged on top of the burned amount; zero when disabled."""
        if self.coupon_fee_bps == 0 or token_amount <= 0:
            return 0
        fee = -(-token_amount * self.coupon_fee_bps // BASIS_POINTS)
        return max(fee, self.unit)

    def create_coupon(self, ctx: CallContext, token_amount: int, discount_percent: int,
                      business_type: str, validity_days: int) -> int:
        """
        Burn token_amount from the caller and register a coupon.

        Returns the new coupon id; a CouponCreated event carries it as well.
        """
        if token_amount <= 0:
            raise ValidationError("Token amount must be greater than 0")
        if not MIN_DISCOUNT_PERCENT <= discount_percent <= MAX_DISCOUNT_PERCENT:
            raise ValidationError("Discount must be between 1 and 100 percent")
        if not MIN_VALIDITY_DAYS <= validity_days <= MAX_VALIDITY_DAYS:
            raise ValidationError("Validity must be between 1 and 365 days")

        fee = self.coupon_fee(token_amount)
        if self.balance_of(ctx.sender) < token_amount + fee:
            raise ValidationError("Insufficient token balance")

        self._burn_counted(ctx.sender, token_amount)
        if fee:
            self._transfer(ctx.sender, self.owner, fee)

        coupon = self.coupons.create(
            owner=ctx.sender,
            discount_percent=discount_percent,
            tokens_burned=token_amount,
            business_type=business_type,
            validity_days=validity_days,
            now=ctx.timestamp,
        )
        self._emit(
            'CouponCreated',
            coupon_id=coupon.id,
            owner=ctx.sender,
            tokens_burned=token_amount,
            discount_percent=discount_percent,
            business_type=business_type,
        )
        logger.info(
            f"Coupon {coupon.id} created by {ctx.sender.hex()[:8]}: "
            f"{discount_percent}% off, {token_amount} burned, fee {fee}"
        )
        return coupon.id

    def use_coupon(self, ctx: CallContext, coupon_id: int):
        """Flip a coupon to used. No value moves; the discount is applied off-chain."""
        coupon = self.coupons.get(coupon_id)
        if coupon is None or coupon.owner != ctx.sender:
            raise AuthorizationError("Not the coupon owner")
        if coupon.is_used:
            raise CouponError("Coupon already used")
        if ctx.timestamp > coupon.expiry_time:
            raise CouponError("Coupon expired")
        coupon.is_used = True
        self._emit('CouponUsed', coupon_id=coupon_id, user=ctx.sender)
        logger.info(f"Coupon {coupon_id} used by {ctx.sender.hex()[:8]}")

    def get_user_coupons(self, user: bytes) -> list[int]:
        return self.coupons.ids_for(user)

    def get_coupon_details(self, coupon_id: int) -> Coupon:
        """Coupon record; a blank record owned by the zero address if never created."""
        coupon = self.coupons.get(coupon_id)
        if coupon is None:
            return Coupon(
                id=0, owner=ZERO_ADDRESS, discount_percent=0, tokens_burned=0,
                expiry_time=0, is_used=False, business_type='',
            )
        return Coupon(**coupon.to_dict())

    def is_coupon_valid(self, coupon_id: int, now: Optional[int] = None) -> bool:
        return self.get_coupon_details(coupon_id).is_valid(self._now(now))

    # ==========================================================================
    # METRICS
    # ==========================================================================

    def get_token_metrics(self) -> tuple[int, int, int]:
        """(total_minted, total_burned, current_supply)"""
        return (
            self.tokenomics.total_minted,
            self.tokenomics.total_burned,
            self.tokenomics.circulating_supply,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'owner': self.owner,
            'tokenomics': self.tokenomics.to_dict(),
            'coupon_fee_bps': self.coupon_fee_bps,
            'coupons': self.coupons.to_dict(),
        })
        return data

    def load_dict(self, data: dict):
        super().load_dict(data)
        self.owner = data['owner']
        self.tokenomics = TokenomicsState(data['tokenomics'])
        self.coupon_fee_bps = data['coupon_fee_bps']
        self.coupons = CouponRegistry(data['coupons'])
