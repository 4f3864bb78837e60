"""
LoyaltyToken emission, parameters and supply accounting.
"""
import random
import pytest
from loyalloop.chain import LocalChain
from loyalloop.config import Config
from loyalloop.crypto import ZERO_ADDRESS
from loyalloop.errors import AuthorizationError, ValidationError
from loyalloop.loyalty_token import TOKEN_UNIT

GENESIS = 1_700_000_000
OWNER = b'\x01' * 20
ALICE = b'\x02' * 20
BOB = b'\x03' * 20


@pytest.fixture
def chain():
    config = Config.default()
    config.chain.genesis_timestamp = GENESIS
    return LocalChain(config)


@pytest.fixture
def token(chain):
    return chain.deploy_loyalty_token(OWNER)


def assert_supply_conserved(token):
    minted, burned, supply = token.get_token_metrics()
    assert minted - burned == token.total_supply()
    assert supply == token.total_supply()


class TestDeployment:

    def test_initial_mint_to_deployer(self, token):
        assert token.owner == OWNER
        assert token.balance_of(OWNER) == 1000 * TOKEN_UNIT
        assert token.total_supply() == 1000 * TOKEN_UNIT
        assert token.get_token_metrics() == (1000 * TOKEN_UNIT, 0, 1000 * TOKEN_UNIT)

    def test_metadata(self, token):
        assert token.name == "LoyalLoop Token"
        assert token.symbol == "LOYAL"
        assert token.decimals == 18
        assert token.emission_rate == 1
        assert token.unit_value == 3

    def test_initial_mint_emits_transfer_from_zero(self, chain, token):
        transfers = chain.get_logs('Transfer', token.address)
        assert len(transfers) == 1
        assert transfers[0].args == {'sender': ZERO_ADDRESS, 'to': OWNER, 'value': 1000 * TOKEN_UNIT}


class TestEmission:

    @pytest.mark.parametrize("spent, whole_tokens", [(3, 1), (9, 3), (10, 3), (11, 3), (12, 4)])
    def test_earn_for_self_floors(self, chain, token, spent, whole_tokens):
        receipt = chain.transact(ALICE, token.earn_tokens_for_self, spent)
        assert receipt.return_value == whole_tokens * TOKEN_UNIT
        assert token.balance_of(ALICE) == whole_tokens * TOKEN_UNIT

    def test_earn_for_self_below_unit_value_reverts(self, chain, token):
        with pytest.raises(ValidationError, match="unit value"):
            chain.transact(ALICE, token.earn_tokens_for_self, 2)
        assert token.balance_of(ALICE) == 0

    def test_earn_for_self_zero_reverts(self, chain, token):
        with pytest.raises(ValidationError, match="greater than 0"):
            chain.transact(ALICE, token.earn_tokens_for_self, 0)

    def test_earn_for_self_updates_counters(self, chain, token):
        chain.transact(ALICE, token.earn_tokens_for_self, 30)
        minted, burned, supply = token.get_token_metrics()
        assert minted == 1010 * TOKEN_UNIT
        assert burned == 0
        assert supply == 1010 * TOKEN_UNIT

    def test_earn_for_self_emits_tokens_earned(self, chain, token):
        receipt = chain.transact(ALICE, token.earn_tokens_for_self, 9)
        event = receipt.find_event('TokensEarned')
        assert event.args == {'customer': ALICE, 'amount_spent': 9, 'tokens': 3 * TOKEN_UNIT}

    def test_owner_earns_for_customer(self, chain, token):
        chain.transact(OWNER, token.earn_tokens, ALICE, 300)
        assert token.balance_of(ALICE) == 100 * TOKEN_UNIT

    def test_owner_earn_below_unit_value_mints_zero(self, chain, token):
        receipt = chain.transact(OWNER, token.earn_tokens, ALICE, 2)
        assert receipt.return_value == 0
        assert token.balance_of(ALICE) == 0
        transfer = receipt.find_event('Transfer')
        assert transfer is not None
        assert transfer.args['value'] == 0

    def test_earn_tokens_non_owner_reverts(self, chain, token):
        with pytest.raises(AuthorizationError):
            chain.transact(ALICE, token.earn_tokens, ALICE, 300)
        assert token.balance_of(ALICE) == 0

    def test_emission_rate_multiplies(self, chain, token):
        chain.transact(OWNER, token.set_emission_rate, 5)
        chain.transact(ALICE, token.earn_tokens_for_self, 6)
        assert token.balance_of(ALICE) == 10 * TOKEN_UNIT

    def test_unit_value_divides(self, chain, token):
        chain.transact(OWNER, token.set_unit_value, 100)
        chain.transact(ALICE, token.earn_tokens_for_self, 250)
        assert token.balance_of(ALICE) == 2 * TOKEN_UNIT


class TestParameters:

    def test_owner_sets_parameters(self, chain, token):
        chain.transact(OWNER, token.set_emission_rate, 2)
        chain.transact(OWNER, token.set_unit_value, 10)
        assert token.emission_rate == 2
        assert token.unit_value == 10
        assert chain.get_logs('EmissionRateUpdated')[0].args == {'new_rate': 2}
        assert chain.get_logs('UnitValueUpdated')[0].args == {'new_unit_value': 10}

    def test_zero_unit_value_rejected(self, chain, token):
        with pytest.raises(ValidationError):
            chain.transact(OWNER, token.set_unit_value, 0)
        assert token.unit_value == 3

    def test_zero_emission_rate_rejected(self, chain, token):
        with pytest.raises(ValidationError):
            chain.transact(OWNER, token.set_emission_rate, 0)
        assert token.emission_rate == 1

    @pytest.mark.parametrize("method_name, args", [
        ('set_emission_rate', (7,)),
        ('set_unit_value', (7,)),
        ('earn_tokens', (BOB, 99)),
        ('transfer_ownership', (BOB,)),
        ('renounce_ownership', ()),
    ])
    def test_non_owner_rejected_without_state_change(self, chain, token, method_name, args):
        before = chain._snapshot()
        with pytest.raises(AuthorizationError):
            chain.transact(ALICE, getattr(token, method_name), *args)
        assert chain._snapshot() == before

    def test_transfer_ownership(self, chain, token):
        chain.transact(OWNER, token.transfer_ownership, ALICE)
        assert token.owner == ALICE
        with pytest.raises(AuthorizationError):
            chain.transact(OWNER, token.set_unit_value, 5)
        chain.transact(ALICE, token.set_unit_value, 5)
        assert token.unit_value == 5

    def test_transfer_ownership_to_zero_rejected(self, chain, token):
        with pytest.raises(ValidationError):
            chain.transact(OWNER, token.transfer_ownership, ZERO_ADDRESS)
        assert token.owner == OWNER


class TestERC20:

    def test_transfer(self, chain, token):
        chain.transact(OWNER, token.transfer, ALICE, 10 * TOKEN_UNIT)
        assert token.balance_of(ALICE) == 10 * TOKEN_UNIT
        assert token.balance_of(OWNER) == 990 * TOKEN_UNIT

    def test_transfer_exceeding_balance_reverts(self, chain, token):
        with pytest.raises(ValidationError, match="exceeds balance"):
            chain.transact(ALICE, token.transfer, BOB, 1)

    def test_transfer_from_consumes_allowance(self, chain, token):
        chain.transact(OWNER, token.approve, ALICE, 50 * TOKEN_UNIT)
        chain.transact(ALICE, token.transfer_from, OWNER, BOB, 20 * TOKEN_UNIT)
        assert token.balance_of(BOB) == 20 * TOKEN_UNIT
        assert token.allowance(OWNER, ALICE) == 30 * TOKEN_UNIT

    def test_transfer_from_without_allowance_reverts(self, chain, token):
        with pytest.raises(ValidationError, match="allowance"):
            chain.transact(ALICE, token.transfer_from, OWNER, BOB, 1)
        assert token.balance_of(BOB) == 0


class TestSupplyConservation:

    def test_random_sequences_conserve_supply(self, chain, token):
        rng = random.Random(1234)
        users = [bytes([i]) * 20 for i in range(10, 15)]

        for _ in range(200):
            user = rng.choice(users)
            action = rng.choice(['earn_self', 'earn_owner', 'coupon', 'transfer'])
            try:
                if action == 'earn_self':
                    chain.transact(user, token.earn_tokens_for_self, rng.randint(0, 50))
                elif action == 'earn_owner':
                    chain.transact(OWNER, token.earn_tokens, user, rng.randint(0, 50))
                elif action == 'coupon':
                    chain.transact(
                        user, token.create_coupon,
                        rng.randint(1, 5) * TOKEN_UNIT, rng.randint(1, 100), "cafe", rng.randint(1, 365),
                    )
                else:
                    chain.transact(user, token.transfer, rng.choice(users), rng.randint(0, 3) * TOKEN_UNIT)
            except ValidationError:
                pass
            assert_supply_conserved(token)

        assert sum(token.balance_of(a) for a in users + [OWNER]) == token.total_supply()
