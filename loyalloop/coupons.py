"""
Coupon registry: burn-to-create discount vouchers with expiry and a
single-use flag. The registry records status only; applying the discount
to a purchase happens off-chain.
"""
from dataclasses import dataclass, asdict
from typing import Optional

from .crypto import ZERO_ADDRESS

SECONDS_PER_DAY = 86400
MIN_DISCOUNT_PERCENT = 1
MAX_DISCOUNT_PERCENT = 100
MIN_VALIDITY_DAYS = 1
MAX_VALIDITY_DAYS = 365


@dataclass
class Coupon:
    id: int
    owner: bytes
    discount_percent: int
    tokens_burned: int
    expiry_time: int
    is_used: bool
    business_type: str
    created_at: int = 0

    def is_valid(self, now: int) -> bool:
        return not self.is_used and now <= self.expiry_time and self.owner != ZERO_ADDRESS

    def to_dict(self) -> dict:
        return asdict(self)


class CouponRegistry:
    """Sequential coupon store. Ids start at 1 and are never reused."""

    def __init__(self, data: dict = None):
        if data is None:
            data = {'next_id': 1, 'coupons': [], 'user_coupons': {}}
        self.next_id = int(data['next_id'])
        self.coupons: dict[int, Coupon] = {
            c['id']: Coupon(**c) for c in data['coupons']
        }
        self.user_coupons: dict[bytes, list[int]] = {
            owner: list(ids) for owner, ids in data['user_coupons'].items()
        }

    def create(self, owner: bytes, discount_percent: int, tokens_burned: int,
               business_type: str, validity_days: int, now: int) -> Coupon:
        coupon = Coupon(
            id=self.next_id,
            owner=owner,
            discount_percent=discount_percent,
            tokens_burned=tokens_burned,
            expiry_time=now + validity_days * SECONDS_PER_DAY,
            is_used=False,
            business_type=business_type,
            created_at=now,
        )
        self.coupons[coupon.id] = coupon
        self.user_coupons.setdefault(owner, []).append(coupon.id)
        self.next_id += 1
        return coupon

    def get(self, coupon_id: int) -> Optional[Coupon]:
        return self.coupons.get(coupon_id)

    def ids_for(self, owner: bytes) -> list[int]:
        return list(self.user_coupons.get(owner, []))

    def __len__(self) -> int:
        return len(self.coupons)

    def to_dict(self) -> dict:
        return {
            'next_id': self.next_id,
            'coupons': [c.to_dict() for c in self.coupons.values()],
            'user_coupons': {owner: list(ids) for owner, ids in self.user_coupons.items()},
        }
