"""
LoyalLoop: a loyalty-token ledger with coupons and a flat-rate exchange pool.
"""
__version__ = "0.1.0"
