# Base-field fragments fetched from the subgraph for each derived field.
# Field names are the remote schema's own.

SUPPLY_BALANCE_UNDERLYING = """
id
cTokenBalance
market { exchangeRate }
"""

BORROW_BALANCE_UNDERLYING = """
id
storedBorrowBalance
accountBorrowIndex
market { borrowIndex }
"""

LIFETIME_SUPPLY_INTEREST_ACCRUED = """
id
cTokenBalance
totalUnderlyingSupplied
totalUnderlyingRedeemed
market { exchangeRate }
"""

LIFETIME_BORROW_INTEREST_ACCRUED = """
id
storedBorrowBalance
accountBorrowIndex
totalUnderlyingBorrowed
totalUnderlyingRepaid
market { borrowIndex }
"""

TOKEN_VALUE_IN_ETH = """
id
collateralFactor
exchangeRate
underlyingPrice
"""

TOTAL_COLLATERAL_VALUE_IN_ETH = """
id
tokens {
  cTokenBalance
  market { collateralFactor exchangeRate underlyingPrice }
}
"""

TOTAL_BORROW_VALUE_IN_ETH = """
id
hasBorrowed
tokens {
  storedBorrowBalance
  accountBorrowIndex
  market { borrowIndex underlyingPrice }
}
"""

HEALTH = """
id
hasBorrowed
tokens {
  cTokenBalance
  storedBorrowBalance
  accountBorrowIndex
  market { collateralFactor exchangeRate underlyingPrice borrowIndex }
}
"""

# Legacy CTokenInfo deployments

UNREALIZED_LEND_BALANCE = """
id
cTokenBalance
market { exchangeRate }
"""

UNREALIZED_SUPPLY_INTEREST = """
id
cTokenBalance
realizedLendBalance
market { exchangeRate }
"""

UNREALIZED_BORROW_BALANCE = """
id
realizedBorrowBalance
userBorrowIndex
market { borrowIndex }
"""
