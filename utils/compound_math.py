"""Derived Compound account metrics.

Every function is pure: it reads already-fetched entity models and returns a
Decimal (or None for ``health`` on accounts that never borrowed). Inputs are
pulled through ``require`` so a null base field surfaces as
``MissingFieldError`` instead of a wrong number.
"""
from decimal import Decimal
from typing import Optional
from models.compound import Account, AccountCToken, Market
from utils.decimals import divide, with_decimal_context

ZERO = Decimal(0)


@with_decimal_context
def supply_balance_underlying(token: AccountCToken) -> Decimal:
    market = token.require("market")
    return token.require("cTokenBalance") * market.require("exchangeRate")


@with_decimal_context
def borrow_balance_underlying(token: AccountCToken) -> Decimal:
    account_borrow_index = token.require("accountBorrowIndex")
    if account_borrow_index == 0:
        return ZERO
    market = token.require("market")
    return divide(
        token.require("storedBorrowBalance") * market.require("borrowIndex"),
        account_borrow_index,
    )


@with_decimal_context
def lifetime_supply_interest_accrued(token: AccountCToken) -> Decimal:
    return (
        supply_balance_underlying(token)
        - token.require("totalUnderlyingSupplied")
        + token.require("totalUnderlyingRedeemed")
    )


@with_decimal_context
def lifetime_borrow_interest_accrued(token: AccountCToken) -> Decimal:
    return (
        borrow_balance_underlying(token)
        - token.require("totalUnderlyingBorrowed")
        + token.require("totalUnderlyingRepaid")
    )


@with_decimal_context
def token_value_in_eth(market: Market) -> Decimal:
    """Collateral-discounted value of one cToken in the reference currency"""
    return (
        market.require("collateralFactor")
        * market.require("exchangeRate")
        * market.require("underlyingPrice")
    )


@with_decimal_context
def total_collateral_value_in_eth(account: Account) -> Decimal:
    return sum(
        (token_value_in_eth(token.require("market")) * token.require("cTokenBalance")
         for token in account.require("tokens")),
        ZERO,
    )


@with_decimal_context
def total_borrow_value_in_eth(account: Account) -> Decimal:
    if not account.require("hasBorrowed"):
        return ZERO
    return sum(
        (token.require("market").require("underlyingPrice") * borrow_balance_underlying(token)
         for token in account.require("tokens")),
        ZERO,
    )


@with_decimal_context
def health(account: Account) -> Optional[Decimal]:
    """Collateral value over borrow value, None if the account never borrowed.

    A borrowing account whose borrow value is exactly zero gets its raw
    collateral value back rather than a ratio.
    """
    if not account.require("hasBorrowed"):
        return None
    borrow_value = total_borrow_value_in_eth(account)
    collateral_value = total_collateral_value_in_eth(account)
    if borrow_value == 0:
        return collateral_value
    return divide(collateral_value, borrow_value)


# Legacy CTokenInfo metrics

def unrealized_lend_balance(info: AccountCToken) -> Decimal:
    return supply_balance_underlying(info)


@with_decimal_context
def unrealized_supply_interest(info: AccountCToken) -> Decimal:
    return supply_balance_underlying(info) - info.require("realizedLendBalance")


def unrealized_borrow_balance(info: AccountCToken) -> Decimal:
    return borrow_balance_underlying(info)


@with_decimal_context
def unrealized_borrow_interest(info: AccountCToken) -> Decimal:
    return borrow_balance_underlying(info) - info.require("storedBorrowBalance")
