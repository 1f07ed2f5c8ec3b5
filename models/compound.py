from decimal import Decimal
from typing import Any, List, Optional
from pydantic import BaseModel, AliasChoices, ConfigDict, Field, field_validator


class MissingFieldError(ValueError):
    """A base field required by a derived field was null or absent"""

    def __init__(self, type_name: str, field_name: str):
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(f"Missing data: {type_name}.{field_name} was not supplied by the subgraph")


class SubgraphEntity(BaseModel):
    """Read-only projection of a subgraph entity.

    Every field is optional because each derived field fetches only its own
    fragment; formulas pull the values they need through ``require``.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def reject_floats(cls, value: Any) -> Any:
        if isinstance(value, float):
            raise ValueError("Float values are not supported to avoid precision loss")
        return value

    def require(self, field_name: str) -> Any:
        value = getattr(self, field_name)
        if value is None:
            raise MissingFieldError(type(self).__name__, field_name)
        return value


class Market(SubgraphEntity):
    id: Optional[str] = None
    exchangeRate: Optional[Decimal] = None
    borrowIndex: Optional[Decimal] = None
    collateralFactor: Optional[Decimal] = None
    underlyingPrice: Optional[Decimal] = None


class AccountCToken(SubgraphEntity):
    """One account's position in one market.

    Older deployments call this type ``CTokenInfo`` and name two of its
    fields ``realizedBorrowBalance`` and ``userBorrowIndex``; both spellings
    are accepted.
    """
    id: Optional[str] = None
    cTokenBalance: Optional[Decimal] = None
    storedBorrowBalance: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("storedBorrowBalance", "realizedBorrowBalance"),
    )
    # 0 means the account never borrowed from this market
    accountBorrowIndex: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("accountBorrowIndex", "userBorrowIndex"),
    )
    totalUnderlyingSupplied: Optional[Decimal] = None
    totalUnderlyingRedeemed: Optional[Decimal] = None
    totalUnderlyingBorrowed: Optional[Decimal] = None
    totalUnderlyingRepaid: Optional[Decimal] = None
    realizedLendBalance: Optional[Decimal] = None
    market: Optional[Market] = None


class Account(SubgraphEntity):
    id: Optional[str] = None
    hasBorrowed: Optional[bool] = None
    tokens: Optional[List[AccountCToken]] = None
