"""
Base contract building blocks: host binding, single-owner access control
and the standard fungible token balance/allowance model.
"""
import logging
from typing import Optional

from .core import CallContext
from .crypto import ZERO_ADDRESS, is_address
from .errors import AuthorizationError, ValidationError

logger = logging.getLogger(__name__)


class Contract:
    """
    A piece of state living at an address on the host runtime.

    EXTERNAL_METHODS lists the methods a signed ContractCall may invoke;
    PAYABLE_METHODS the ones that accept attached native value.
    """

    EXTERNAL_METHODS: tuple = ()
    PAYABLE_METHODS: tuple = ()

    def __init__(self, chain, address: bytes):
        self.chain = chain
        self.address = address

    def _emit(self, name: str, **args):
        self.chain.record_event(self.address, name, args)

    def _now(self, now: Optional[int] = None) -> int:
        return self.chain.timestamp if now is None else now

    def to_dict(self) -> dict:
        return {}

    def load_dict(self, data: dict):
        pass


class Ownable:
    """Single-writer capability: the stored owner address gates admin calls."""

    def _init_owner(self, owner: bytes):
        self.owner = owner
        self._emit('OwnershipTransferred', previous_owner=ZERO_ADDRESS, new_owner=owner)

    def only_owner(self, ctx: CallContext):
        if ctx.sender != self.owner:
            raise AuthorizationError("Ownable: caller is not the owner")

    def transfer_ownership(self, ctx: CallContext, new_owner: bytes):
        self.only_owner(ctx)
        if not is_address(new_owner) or new_owner == ZERO_ADDRESS:
            raise ValidationError("Ownable: new owner is the zero address")
        previous = self.owner
        self.owner = new_owner
        self._emit('OwnershipTransferred', previous_owner=previous, new_owner=new_owner)
        logger.info(f"Ownership of {self.address.hex()[:8]} moved to {new_owner.hex()[:8]}")

    def renounce_ownership(self, ctx: CallContext):
        self.only_owner(ctx)
        previous = self.owner
        self.owner = ZERO_ADDRESS
        self._emit('OwnershipTransferred', previous_owner=previous, new_owner=ZERO_ADDRESS)


class ERC20(Contract):
    """Balances and allowances with Transfer/Approval events."""

    def __init__(self, chain, address: bytes, name: str, symbol: str, decimals: int = 18):
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._total_supply = 0
        self._balances: dict[bytes, int] = {}
        self._allowances: dict[bytes, dict[bytes, int]] = {}

    @property
    def unit(self) -> int:
        """Smallest-unit multiplier for one whole token."""
        return 10 ** self.decimals

    # ----------------------------------------------------------------------
    # Views
    # ----------------------------------------------------------------------

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: bytes) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self._allowances.get(owner, {}).get(spender, 0)

    # ----------------------------------------------------------------------
    # Mutations
    # ----------------------------------------------------------------------

    def transfer(self, ctx: CallContext, to: bytes, amount: int) -> bool:
        self._transfer(ctx.sender, to, amount)
        return True

    def approve(self, ctx: CallContext, spender: bytes, amount: int) -> bool:
        self._approve(ctx.sender, spender, amount)
        return True

    def transfer_from(self, ctx: CallContext, sender: bytes, to: bytes, amount: int) -> bool:
        current = self.allowance(sender, ctx.sender)
        if current < amount:
            raise ValidationError("ERC20: insufficient allowance")
        # Check the balance before touching the allowance so a failure leaves both intact
        if self.balance_of(sender) < amount:
            raise ValidationError("ERC20: transfer amount exceeds balance")
        self._approve(sender, ctx.sender, current - amount)
        self._transfer(sender, to, amount)
        return True

    def _transfer(self, sender: bytes, to: bytes, amount: int):
        if sender == ZERO_ADDRESS:
            raise ValidationError("ERC20: transfer from the zero address")
        if not is_address(to) or to == ZERO_ADDRESS:
            raise ValidationError("ERC20: transfer to the zero address")
        if amount < 0:
            raise ValidationError("ERC20: negative amount")
        balance = self.balance_of(sender)
        if balance < amount:
            raise ValidationError("ERC20: transfer amount exceeds balance")
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount
        self._emit('Transfer', sender=sender, to=to, value=amount)

    def _approve(self, owner: bytes, spender: bytes, amount: int):
        if not is_address(spender) or spender == ZERO_ADDRESS:
            raise ValidationError("ERC20: approve to the zero address")
        if amount < 0:
            raise ValidationError("ERC20: negative amount")
        self._allowances.setdefault(owner, {})[spender] = amount
        self._emit('Approval', owner=owner, spender=spender, value=amount)

    def _mint(self, account: bytes, amount: int):
        if not is_address(account) or account == ZERO_ADDRESS:
            raise ValidationError("ERC20: mint to the zero address")
        self._total_supply += amount
        self._balances[account] = self.balance_of(account) + amount
        self._emit('Transfer', sender=ZERO_ADDRESS, to=account, value=amount)

    def _burn(self, account: bytes, amount: int):
        balance = self.balance_of(account)
        if balance < amount:
            raise ValidationError("ERC20: burn amount exceeds balance")
        self._balances[account] = balance - amount
        self._total_supply -= amount
        self._emit('Transfer', sender=account, to=ZERO_ADDRESS, value=amount)

    # ----------------------------------------------------------------------
    # Snapshot support
    # ----------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            'total_supply': self._total_supply,
            'balances': dict(self._balances),
            'allowances': {owner: dict(spenders) for owner, spenders in self._allowances.items()},
        }

    def load_dict(self, data: dict):
        self._total_supply = data['total_supply']
        self._balances = dict(data['balances'])
        self._allowances = {owner: dict(spenders) for owner, spenders in data['allowances'].items()}
