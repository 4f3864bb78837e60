"""
Core data structures passed between callers, the host runtime and contracts.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from .crypto import generate_hash, public_key_to_address, sign, verify_signature
from .utils.encoding import packb


@dataclass(frozen=True)
class CallContext:
    """
    Explicit authorization context handed to every mutating operation.

    sender is the immediate caller (msg.sender), origin the account that
    started the outermost call, value the native amount attached to it.
    """
    sender: bytes
    value: int = 0
    timestamp: int = 0
    origin: Optional[bytes] = None

    def forward(self, sender: bytes, value: int = 0) -> 'CallContext':
        """Context for a nested call made by a contract on behalf of this one."""
        return CallContext(
            sender=sender,
            value=value,
            timestamp=self.timestamp,
            origin=self.origin or self.sender,
        )


@dataclass
class Event:
    """A log entry emitted by a contract."""
    name: str
    address: bytes
    args: dict
    block_number: int = 0


@dataclass
class Receipt:
    """Result of a successful call."""
    tx_hash: bytes
    block_number: int
    return_value: Any = None
    events: list = field(default_factory=list)

    def find_event(self, name: str) -> Optional[Event]:
        for event in self.events:
            if event.name == name:
                return event
        return None


class ContractCall:
    """
    A signed request to invoke a contract method, as a wallet would submit it.
    """

    def __init__(self,
                 sender_public_key: str,
                 contract: bytes,
                 method: str,
                 args: Optional[list] = None,
                 value: int = 0,
                 nonce: int = 0,
                 signature: Optional[bytes] = None,
                 timestamp: Optional[float] = None,
                 chain_id: int = 31337):
        self.sender_public_key = sender_public_key
        self.contract = contract
        self.method = method
        self.args = list(args or [])
        self.value = value
        self.nonce = nonce
        self.signature = signature
        self.timestamp = timestamp or time.time()
        self.chain_id = chain_id

    @classmethod
    def from_dict(cls, data: dict):
        """Creates a ContractCall object from a dictionary."""
        signature = data.get('signature')
        if isinstance(signature, str):
            signature = bytes.fromhex(signature)
        return cls(
            sender_public_key=data['sender_public_key'],
            contract=data['contract'],
            method=data['method'],
            args=data.get('args', []),
            value=data.get('value', 0),
            nonce=data['nonce'],
            signature=signature,
            timestamp=data.get('timestamp'),
            chain_id=data.get('chain_id', 31337),
        )

    def to_dict(self, include_signature=True):
        data = {
            'sender_public_key': self.sender_public_key,
            'contract': self.contract,
            'method': self.method,
            'args': self.args,
            'value': self.value,
            'nonce': self.nonce,
            'timestamp': self.timestamp,
            'chain_id': self.chain_id,
        }
        if include_signature and self.signature:
            data['signature'] = self.signature
        return data

    def get_signing_data(self) -> bytes:
        """Returns the canonical byte representation for signing."""
        return packb(self.to_dict(include_signature=False))

    def sign(self, private_key):
        """Signs the call."""
        self.signature = sign(private_key, self.get_signing_data())

    def verify_signature(self) -> bool:
        """Verifies the call's signature."""
        if not self.signature:
            return False
        return verify_signature(
            self.sender_public_key,
            self.signature,
            self.get_signing_data()
        )

    @property
    def sender(self) -> bytes:
        return public_key_to_address(self.sender_public_key)

    @property
    def id(self) -> bytes:
        """The unique hash identifier of the call."""
        return generate_hash(self.get_signing_data())

    def __repr__(self) -> str:
        return (
            f"ContractCall(method={self.method}, "
            f"contract={self.contract.hex()[:8]}, "
            f"nonce={self.nonce}, value={self.value})"
        )
