import pytest
from unittest.mock import AsyncMock, MagicMock
from graphql import build_schema
from resolvers.compound import DERIVED_FIELDS
from services.gateway_service import GatewayService
from services.schema_service import build_gateway_schema

# Trimmed-down Compound v2 subgraph schema, as introspection would return it
COMPOUND_SDL = """
scalar BigDecimal
scalar BigInt

interface Event {
  id: ID!
  amount: BigDecimal!
}

type TransferEvent implements Event {
  id: ID!
  amount: BigDecimal!
  to: String!
}

type MintEvent implements Event {
  id: ID!
  amount: BigDecimal!
  minter: String!
}

type Market {
  id: ID!
  symbol: String!
  exchangeRate: BigDecimal!
  borrowIndex: BigDecimal!
  collateralFactor: BigDecimal!
  underlyingPrice: BigDecimal!
}

type AccountCToken {
  id: ID!
  market: Market!
  account: Account!
  cTokenBalance: BigDecimal!
  storedBorrowBalance: BigDecimal!
  accountBorrowIndex: BigDecimal!
  totalUnderlyingSupplied: BigDecimal!
  totalUnderlyingRedeemed: BigDecimal!
  totalUnderlyingBorrowed: BigDecimal!
  totalUnderlyingRepaid: BigDecimal!
}

type Account {
  id: ID!
  hasBorrowed: Boolean!
  tokens(first: Int): [AccountCToken!]!
}

type Query {
  account(id: ID!): Account
  accounts(first: Int): [Account!]!
  accountCToken(id: ID!): AccountCToken
  markets: [Market!]!
  events: [Event!]!
}

type Mutation {
  refreshAccount(id: ID!): Account
}

type Subscription {
  account(id: ID!): Account
}
"""

# Older deployment: CTokenInfo with realized balances
LEGACY_SDL = """
scalar BigDecimal

type Market {
  id: ID!
  exchangeRate: BigDecimal!
  borrowIndex: BigDecimal!
}

type CTokenInfo {
  id: ID!
  market: Market!
  cTokenBalance: BigDecimal!
  realizedLendBalance: BigDecimal!
  realizedBorrowBalance: BigDecimal!
  userBorrowIndex: BigDecimal!
}

type Query {
  ctokenInfo(id: ID!): CTokenInfo
}
"""


@pytest.fixture()
def compound_sdl():
    return COMPOUND_SDL


@pytest.fixture()
def remote_schema():
    return build_schema(COMPOUND_SDL)


@pytest.fixture()
def legacy_schema():
    return build_schema(LEGACY_SDL)


@pytest.fixture()
def gateway_schema(remote_schema):
    """Extended schema and installed derived-field index"""
    return build_gateway_schema(remote_schema, DERIVED_FIELDS)


@pytest.fixture()
def market_data():
    return {
        "id": "0xmarket",
        "exchangeRate": "1",
        "borrowIndex": "1.5",
        "collateralFactor": "0.75",
        "underlyingPrice": "10",
    }


@pytest.fixture()
def subgraph_client():
    client = MagicMock()
    client.execute = AsyncMock()
    client.subscription_url = "wss://subgraph.example/compound"
    return client


@pytest.fixture()
def gateway(gateway_schema, subgraph_client):
    schema, installed = gateway_schema
    return GatewayService(schema, installed, subgraph_client)
