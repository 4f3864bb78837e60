"""
Test tokenomics state storage on the loyalty ledger.
"""
import unittest
from loyalloop.chain import LocalChain
from loyalloop.config import Config
from loyalloop.errors import ValidationError
from loyalloop.loyalty_token import TOKEN_UNIT
from loyalloop.tokenomics_state import TokenomicsState
from loyalloop.utils.encoding import packb, unpackb


class TestTokenomicsState(unittest.TestCase):
    def setUp(self):
        """Set up test chain."""
        config = Config.default()
        config.chain.genesis_timestamp = 1_700_000_000
        self.chain = LocalChain(config)
        self.owner = b'\x01' * 20
        self.token = self.chain.deploy_loyalty_token(self.owner)

    def test_tokenomics_state_initialization(self):
        """Test default counters and emission parameters."""
        state = TokenomicsState()

        self.assertEqual(state.total_minted, 0)
        self.assertEqual(state.total_burned, 0)
        self.assertEqual(state.emission_rate, 1)
        self.assertEqual(state.unit_value, 3)

    def test_deployment_counts_initial_mint(self):
        """The initial mint goes through the counters like any other."""
        state = self.token.tokenomics
        self.assertEqual(state.total_minted, 1000 * TOKEN_UNIT)
        self.assertEqual(state.total_burned, 0)

    def test_tokenomics_state_storage(self):
        """Test storing and retrieving tokenomics state."""
        state = TokenomicsState()
        state.total_minted = 100 * TOKEN_UNIT
        state.total_burned = 10 * TOKEN_UNIT
        state.emission_rate = 4

        retrieved = TokenomicsState(unpackb(packb(state.to_dict())))

        self.assertEqual(retrieved.total_minted, 100 * TOKEN_UNIT)
        self.assertEqual(retrieved.total_burned, 10 * TOKEN_UNIT)
        self.assertEqual(retrieved.emission_rate, 4)
        self.assertEqual(retrieved.unit_value, 3)

    def test_circulating_supply_calculation(self):
        """Test circulating supply calculation."""
        state = TokenomicsState()
        state.total_minted = 100 * TOKEN_UNIT
        state.total_burned = 30 * TOKEN_UNIT
        self.assertEqual(state.circulating_supply, 70 * TOKEN_UNIT)

    def test_tokens_for_spend_floors(self):
        """Spend below one unit value earns nothing."""
        state = TokenomicsState()
        self.assertEqual(state.tokens_for_spend(2, TOKEN_UNIT), 0)
        self.assertEqual(state.tokens_for_spend(3, TOKEN_UNIT), TOKEN_UNIT)
        self.assertEqual(state.tokens_for_spend(10, TOKEN_UNIT), 3 * TOKEN_UNIT)

    def test_tokens_for_spend_uses_emission_rate(self):
        state = TokenomicsState({
            'total_minted': 0,
            'total_burned': 0,
            'emission_rate': 5,
            'unit_value': 10,
        })
        self.assertEqual(state.tokens_for_spend(25, TOKEN_UNIT), 10 * TOKEN_UNIT)

    def test_record_mint_and_burn(self):
        state = TokenomicsState()
        state.record_mint(50 * TOKEN_UNIT)
        state.record_burn(20 * TOKEN_UNIT)
        self.assertEqual(state.circulating_supply, 30 * TOKEN_UNIT)

    def test_invalid_state_rejected(self):
        """Inconsistent stored state cannot be loaded."""
        bad_states = [
            {'total_minted': -1, 'total_burned': 0, 'emission_rate': 1, 'unit_value': 3},
            {'total_minted': 1, 'total_burned': 2, 'emission_rate': 1, 'unit_value': 3},
            {'total_minted': 0, 'total_burned': 0, 'emission_rate': 0, 'unit_value': 3},
            {'total_minted': 0, 'total_burned': 0, 'emission_rate': 1, 'unit_value': 0},
        ]
        for data in bad_states:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    TokenomicsState(data)

    def test_tokenomics_restored_after_revert(self):
        """A reverted burn leaves the counters untouched."""
        user = b'\x02' * 20
        before = self.token.tokenomics.to_dict()

        with self.assertRaises(ValidationError):
            self.chain.transact(user, self.token.create_coupon, TOKEN_UNIT, 10, "cafe", 30)

        self.assertEqual(self.token.tokenomics.to_dict(), before)

    def test_repr_shows_whole_tokens(self):
        self.assertIn("circulating=1000 tokens", repr(self.token.tokenomics))


if __name__ == '__main__':
    unittest.main()
