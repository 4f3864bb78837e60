"""
Configuration management for the loyalty ledger, the exchange pool and
the local host runtime.
"""
import json
import os
from typing import Optional
from dataclasses import dataclass, asdict


@dataclass
class ChainConfig:
    """Host runtime configuration."""
    chain_id: int = 31337  # Hardhat local network id
    genesis_timestamp: Optional[int] = None  # None = wall clock at startup


@dataclass
class TokenConfig:
    """LoyaltyToken deployment parameters."""
    name: str = "LoyalLoop Token"
    symbol: str = "LOYAL"
    decimals: int = 18
    initial_supply: int = 1000  # whole tokens minted to the deployer
    emission_rate: int = 1
    unit_value: int = 3
    coupon_fee_bps: int = 0


@dataclass
class DexConfig:
    """SimpleDEX deployment parameters."""
    exchange_rate: int = 1000 * 10 ** 18  # tokens per native unit, scaled by 1e18
    fee_basis_points: int = 100  # 1%
    max_fee_basis_points: int = 1000  # 10%


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class Config:
    """Main configuration."""
    chain: ChainConfig
    token: TokenConfig
    dex: DexConfig
    monitoring: MonitoringConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            chain=ChainConfig(),
            token=TokenConfig(),
            dex=DexConfig(),
            monitoring=MonitoringConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            chain=ChainConfig(**data.get('chain', {})),
            token=TokenConfig(**data.get('token', {})),
            dex=DexConfig(**data.get('dex', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {}))
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'chain': asdict(self.chain),
            'token': asdict(self.token),
            'dex': asdict(self.dex),
            'monitoring': asdict(self.monitoring)
        }
