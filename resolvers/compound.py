from typing import List
from models.compound import Account, AccountCToken, Market
from queries import derived_fields as fragments
from resolvers.base import DerivedField
from utils import compound_math

ACCOUNT_CTOKEN_FIELDS = [
    DerivedField(
        "AccountCToken", "supplyBalanceUnderlying",
        fragment=fragments.SUPPLY_BALANCE_UNDERLYING,
        model=AccountCToken,
        compute=compound_math.supply_balance_underlying,
        description="Current supply balance in units of the underlying asset",
    ),
    DerivedField(
        "AccountCToken", "borrowBalanceUnderlying",
        fragment=fragments.BORROW_BALANCE_UNDERLYING,
        model=AccountCToken,
        compute=compound_math.borrow_balance_underlying,
        description="Current borrow balance including accrued interest",
    ),
    DerivedField(
        "AccountCToken", "lifetimeSupplyInterestAccrued",
        fragment=fragments.LIFETIME_SUPPLY_INTEREST_ACCRUED,
        model=AccountCToken,
        compute=compound_math.lifetime_supply_interest_accrued,
    ),
    DerivedField(
        "AccountCToken", "lifetimeBorrowInterestAccrued",
        fragment=fragments.LIFETIME_BORROW_INTEREST_ACCRUED,
        model=AccountCToken,
        compute=compound_math.lifetime_borrow_interest_accrued,
    ),
]

MARKET_FIELDS = [
    DerivedField(
        "Market", "tokenValueInEth",
        fragment=fragments.TOKEN_VALUE_IN_ETH,
        model=Market,
        compute=compound_math.token_value_in_eth,
        description="Collateral-discounted value of one cToken",
    ),
]

ACCOUNT_FIELDS = [
    DerivedField(
        "Account", "totalCollateralValueInEth",
        fragment=fragments.TOTAL_COLLATERAL_VALUE_IN_ETH,
        model=Account,
        compute=compound_math.total_collateral_value_in_eth,
    ),
    DerivedField(
        "Account", "totalBorrowValueInEth",
        fragment=fragments.TOTAL_BORROW_VALUE_IN_ETH,
        model=Account,
        compute=compound_math.total_borrow_value_in_eth,
    ),
    DerivedField(
        "Account", "health",
        fragment=fragments.HEALTH,
        model=Account,
        compute=compound_math.health,
        description="Collateral value over borrow value; null if the account never borrowed",
    ),
]

CTOKEN_INFO_FIELDS = [
    DerivedField(
        "CTokenInfo", "unrealizedLendBalance",
        fragment=fragments.UNREALIZED_LEND_BALANCE,
        model=AccountCToken,
        compute=compound_math.unrealized_lend_balance,
    ),
    DerivedField(
        "CTokenInfo", "unrealizedSupplyInterest",
        fragment=fragments.UNREALIZED_SUPPLY_INTEREST,
        model=AccountCToken,
        compute=compound_math.unrealized_supply_interest,
    ),
    DerivedField(
        "CTokenInfo", "unrealizedBorrowBalance",
        fragment=fragments.UNREALIZED_BORROW_BALANCE,
        model=AccountCToken,
        compute=compound_math.unrealized_borrow_balance,
    ),
    DerivedField(
        "CTokenInfo", "unrealizedBorrowInterest",
        fragment=fragments.UNREALIZED_BORROW_BALANCE,
        model=AccountCToken,
        compute=compound_math.unrealized_borrow_interest,
    ),
]

# Fields whose host type is missing remotely are skipped when the schema is built
DERIVED_FIELDS: List[DerivedField] = (
    ACCOUNT_CTOKEN_FIELDS + MARKET_FIELDS + ACCOUNT_FIELDS + CTOKEN_INFO_FIELDS
)
