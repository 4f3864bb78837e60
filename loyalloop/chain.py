"""
A local host runtime for the loyalty contracts.

Stands in for the blockchain VM: native balances, a clock, contract
deployment, signed call submission and all-or-nothing execution. Every
mutating call runs against a snapshot; any exception restores it and is
re-raised to the caller.
"""
import logging
import time
from typing import Optional

from loyalloop.config import Config
from loyalloop.core import CallContext, ContractCall, Event, Receipt
from loyalloop.crypto import ZERO_ADDRESS, contract_address, generate_hash, is_address
from loyalloop.erc20 import Contract
from loyalloop.errors import ValidationError
from loyalloop.loyalty_token import LoyaltyToken
from loyalloop.monitoring import Monitor
from loyalloop.simple_dex import SimpleDEX
from loyalloop.utils.encoding import packb, unpackb

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

NATIVE_UNIT = 10 ** 18


class LocalChain:
    def __init__(self, config: Config = None):
        self.config = config or Config.default()
        self.chain_id = self.config.chain.chain_id

        genesis = self.config.chain.genesis_timestamp
        self.timestamp = int(time.time()) if genesis is None else int(genesis)
        self.block_number = 0

        self.native_balances: dict[bytes, int] = {}
        self.nonces: dict[bytes, int] = {}
        self.contracts: dict[bytes, Contract] = {}
        self.events: list[Event] = []
        self.receive_hooks: dict = {}

        self.monitor = None
        if self.config.monitoring.enabled:
            logger.info(
                f"Initializing Monitor with host={self.config.monitoring.host}, "
                f"port={self.config.monitoring.port}"
            )
            self.monitor = Monitor(self, host=self.config.monitoring.host, port=self.config.monitoring.port)
            self.monitor.start_server()

    # ==========================================================================
    # CLOCK
    # ==========================================================================

    def advance_time(self, seconds: int):
        if seconds < 0:
            raise ValueError("Time cannot move backwards")
        self.timestamp += seconds

    def set_timestamp(self, timestamp: int):
        if timestamp < self.timestamp:
            raise ValueError("Time cannot move backwards")
        self.timestamp = timestamp

    # ==========================================================================
    # NATIVE CURRENCY
    # ==========================================================================

    def fund(self, address: bytes, amount: int):
        """Credit native currency out of thin air (development faucet)."""
        if not is_address(address):
            raise ValueError("Invalid address")
        if amount < 0:
            raise ValueError("Amount cannot be negative")
        self.native_balances[address] = self.get_native_balance(address) + amount

    def get_native_balance(self, address: bytes) -> int:
        return self.native_balances.get(address, 0)

    def set_receive_hook(self, address: bytes, hook):
        """Register a callable run when native currency is sent to address."""
        if hook is None:
            self.receive_hooks.pop(address, None)
        else:
            self.receive_hooks[address] = hook

    def transfer_native(self, sender: bytes, to: bytes, amount: int, ctx: CallContext):
        """Move native currency and hand control to the recipient's hook, if any."""
        self._move_native(sender, to, amount)
        hook = self.receive_hooks.get(to)
        if hook is not None:
            hook(ctx.forward(sender, value=amount))

    def _move_native(self, sender: bytes, to: bytes, amount: int):
        if amount < 0:
            raise ValidationError("Native amount cannot be negative")
        if not is_address(to) or to == ZERO_ADDRESS:
            raise ValidationError("Invalid native recipient")
        balance = self.get_native_balance(sender)
        if balance < amount:
            raise ValidationError("Insufficient native balance")
        self.native_balances[sender] = balance - amount
        self.native_balances[to] = self.get_native_balance(to) + amount

    # ==========================================================================
    # CONTRACTS
    # ==========================================================================

    def get_contract(self, address: bytes) -> Optional[Contract]:
        return self.contracts.get(address)

    def deploy(self, contract_cls, deployer: bytes, *args, **kwargs):
        """Construct a contract atomically; the deployer is msg.sender."""
        if not is_address(deployer):
            raise ValidationError("Invalid deployer address")

        snapshot = self._snapshot()
        nonce = self.nonces.get(deployer, 0)
        address = contract_address(deployer, nonce)
        self.block_number += 1
        ctx = CallContext(sender=deployer, value=0, timestamp=self.timestamp, origin=deployer)

        try:
            contract = contract_cls(self, address, ctx, *args, **kwargs)
            self.contracts[address] = contract
            self.nonces[deployer] = nonce + 1
        except Exception as e:
            logger.warning(f"Deployment of {contract_cls.__name__} failed: {e}")
            self._restore(snapshot)
            raise e

        self._update_monitor()
        return contract

    def deploy_loyalty_token(self, deployer: bytes) -> LoyaltyToken:
        return self.deploy(LoyaltyToken, deployer, self.config.token)

    def deploy_dex(self, deployer: bytes, token_address: bytes) -> SimpleDEX:
        dex_config = self.config.dex
        return self.deploy(
            SimpleDEX,
            deployer,
            token_address,
            dex_config.exchange_rate,
            dex_config.fee_basis_points,
            dex_config.max_fee_basis_points,
        )

    # ==========================================================================
    # CALL PROCESSING
    # ==========================================================================

    def transact(self, sender: bytes, method, *args, value: int = 0) -> Receipt:
        """
        Execute a bound contract method as a single atomic call:
        - Payable value moved from sender to the contract first
        - Explicit CallContext passed as the first argument
        - Full state rollback on failure, exception re-raised
        """
        contract = self._resolve(method)
        name = method.__name__
        if value < 0:
            raise ValidationError("Value cannot be negative")
        if value and name not in contract.PAYABLE_METHODS:
            raise ValidationError(f"Method {name} is not payable")

        started = time.time()
        snapshot = self._snapshot()
        first_event = len(self.events)
        self.block_number += 1
        ctx = CallContext(sender=sender, value=value, timestamp=self.timestamp, origin=sender)

        try:
            if value:
                self._move_native(sender, contract.address, value)
            result = method(ctx, *args)
        except Exception as e:
            # Call failed - ROLLBACK everything it touched
            logger.warning(f"Call {name} from {sender.hex()[:8]} reverted: {e}")
            self._restore(snapshot)
            self._record_call(name, 'reverted', started)
            raise e

        tx_hash = generate_hash(packb([sender, contract.address, name, self.block_number, self.timestamp]))
        receipt = Receipt(
            tx_hash=tx_hash,
            block_number=self.block_number,
            return_value=result,
            events=self.events[first_event:],
        )
        self._record_call(name, 'success', started)
        self._update_monitor()
        logger.debug(f"Call {name} {tx_hash.hex()[:8]} included in block {self.block_number}")
        return receipt

    def submit(self, call: ContractCall) -> Receipt:
        """
        Execute a signed call. Signature, chain id and nonce are checked
        first; the nonce is consumed even when the call itself reverts.
        """
        if not call.verify_signature():
            raise ValidationError("Invalid call signature")

        if call.chain_id != self.chain_id:
            raise ValidationError(f"Wrong chain ID. Expected {self.chain_id}, got {call.chain_id}")

        sender = call.sender
        expected_nonce = self.nonces.get(sender, 0)
        if call.nonce != expected_nonce:
            raise ValidationError(f"Invalid nonce. Expected {expected_nonce}, got {call.nonce}")

        contract = self.contracts.get(call.contract)
        if contract is None:
            raise ValidationError("Unknown contract")
        if call.method not in contract.EXTERNAL_METHODS:
            raise ValidationError(f"Method {call.method} is not externally callable")

        self.nonces[sender] = expected_nonce + 1
        return self.transact(sender, getattr(contract, call.method), *call.args, value=call.value)

    def call(self, method, *args):
        """Run a read-only accessor."""
        self._resolve(method)
        return method(*args)

    def _resolve(self, method) -> Contract:
        contract = getattr(method, '__self__', None)
        if not isinstance(contract, Contract) or self.contracts.get(contract.address) is not contract:
            raise ValidationError("Method does not belong to a deployed contract")
        return contract

    # ==========================================================================
    # EVENTS
    # ==========================================================================

    def record_event(self, address: bytes, name: str, args: dict):
        self.events.append(Event(name=name, address=address, args=args, block_number=self.block_number))

    def get_logs(self, name: str = None, address: bytes = None) -> list[Event]:
        return [
            e for e in self.events
            if (name is None or e.name == name) and (address is None or e.address == address)
        ]

    # ==========================================================================
    # STATE SNAPSHOTS
    # ==========================================================================

    def _snapshot(self) -> bytes:
        return packb({
            'block_number': self.block_number,
            'native_balances': self.native_balances,
            'nonces': self.nonces,
            'contracts': {addr: c.to_dict() for addr, c in self.contracts.items()},
            'event_count': len(self.events),
        })

    def _restore(self, snapshot: bytes):
        data = unpackb(snapshot)
        self.block_number = data['block_number']
        self.native_balances = dict(data['native_balances'])
        self.nonces = dict(data['nonces'])
        for address in list(self.contracts):
            if address not in data['contracts']:
                del self.contracts[address]
            else:
                self.contracts[address].load_dict(data['contracts'][address])
        del self.events[data['event_count']:]

    # ==========================================================================
    # MONITORING
    # ==========================================================================

    def _record_call(self, method_name: str, status: str, started: float):
        if self.monitor:
            self.monitor.record_call(method_name, status, time.time() - started)

    def _update_monitor(self):
        if self.monitor:
            self.monitor.update()
