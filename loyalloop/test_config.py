"""
Configuration defaults and JSON persistence.
"""
import json
from loyalloop.chain import LocalChain
from loyalloop.config import Config, TokenConfig
from loyalloop.loyalty_token import TOKEN_UNIT


def test_defaults():
    config = Config.default()
    assert config.chain.chain_id == 31337
    assert config.chain.genesis_timestamp is None
    assert config.token == TokenConfig()
    assert config.token.initial_supply == 1000
    assert config.token.coupon_fee_bps == 0
    assert config.dex.exchange_rate == 1000 * 10 ** 18
    assert config.dex.fee_basis_points == 100
    assert config.dex.max_fee_basis_points == 1000
    assert config.monitoring.enabled is False


def test_round_trip_through_file(tmp_path):
    config = Config.default()
    config.chain.genesis_timestamp = 1_700_000_000
    config.token.symbol = "CAFE"
    config.dex.fee_basis_points = 250
    path = tmp_path / "nested" / "config.json"

    config.to_file(str(path))
    loaded = Config.from_file(str(path))

    assert loaded == config
    assert json.loads(path.read_text())['token']['symbol'] == "CAFE"


def test_partial_file_uses_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({'token': {'initial_supply': 5, 'unit_value': 10}}))

    config = Config.from_file(str(path))

    assert config.token.initial_supply == 5
    assert config.token.unit_value == 10
    assert config.token.emission_rate == 1
    assert config.dex.fee_basis_points == 100


def test_config_drives_deployment():
    config = Config.default()
    config.token.initial_supply = 50
    config.token.unit_value = 10
    config.dex.fee_basis_points = 0
    chain = LocalChain(config)
    owner = b'\x01' * 20

    token = chain.deploy_loyalty_token(owner)
    dex = chain.deploy_dex(owner, token.address)

    assert token.total_supply() == 50 * TOKEN_UNIT
    assert token.unit_value == 10
    assert dex.get_dex_status()[3] == 0
