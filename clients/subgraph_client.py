import os
import logging
import asyncio
from typing import Any, AsyncIterator, Dict, Optional
from aiohttp import ClientError
from gql import Client
from gql.transport.aiohttp import AIOHTTPTransport
from gql.transport.aiohttp_websockets import AIOHTTPWebsocketsTransport
from gql.transport.exceptions import TransportQueryError, TransportServerError
from graphql import DocumentNode, GraphQLSchema

logger = logging.getLogger(__name__)

# Failures worth another attempt; GraphQL errors from the subgraph are not
RETRYABLE_ERRORS = (asyncio.TimeoutError, TransportServerError, ClientError)


class SubgraphClient:
    MAX_RETRIES = 3
    TIMEOUT_SECONDS = 60
    RETRY_DELAY_SECONDS = 1

    def __init__(self, subgraph_url: str, subscription_url: Optional[str] = None):
        if not subgraph_url:
            raise ValueError("Subgraph URL must be provided to SubgraphClient")
        self.subgraph_url = subgraph_url
        self.subscription_url = subscription_url
        self.schema: Optional[GraphQLSchema] = None
        logger.info(f"Initialized SubgraphClient with URL: {self.subgraph_url}")
        if self.subscription_url:
            logger.info(f"Subscriptions will use: {self.subscription_url}")

        self.api_key = os.getenv("GRAPH_API_KEY")

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _http_transport(self) -> AIOHTTPTransport:
        return AIOHTTPTransport(
            url=self.subgraph_url,
            headers=self._headers(),
            timeout=self.TIMEOUT_SECONDS,
        )

    async def _with_retries(self, description: str, call):
        for attempt in range(self.MAX_RETRIES):
            try:
                return await call()
            except TransportQueryError:
                raise
            except RETRYABLE_ERRORS as e:
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e!r}"
                )
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(f"Max retries reached for {description}")
                    raise
                await asyncio.sleep(self.RETRY_DELAY_SECONDS * (attempt + 1))

    async def _fetch_schema(self) -> GraphQLSchema:
        client = Client(
            transport=self._http_transport(),
            fetch_schema_from_transport=True,
            execute_timeout=self.TIMEOUT_SECONDS,
        )
        async with client:
            pass
        return client.schema

    async def fetch_schema(self) -> GraphQLSchema:
        """Introspect the subgraph schema and keep it for request validation"""
        self.schema = await self._with_retries("Subgraph introspection", self._fetch_schema)
        logger.info(f"Fetched subgraph schema with {len(self.schema.type_map)} types")
        return self.schema

    async def _execute_query(
        self, document: DocumentNode, variables: Optional[Dict[str, Any]], operation_name: Optional[str]
    ) -> Dict[str, Any]:
        """Execute a GraphQL document with proper session management"""
        async with Client(
            transport=self._http_transport(),
            schema=self.schema,
            execute_timeout=self.TIMEOUT_SECONDS,
        ) as session:
            return await session.execute(
                document, variable_values=variables, operation_name=operation_name
            )

    async def execute(
        self,
        document: DocumentNode,
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run a query or mutation against the subgraph over HTTP.

        Raises:
            TransportQueryError: the subgraph answered with GraphQL errors
                (``data`` on the exception holds any partial result).
        """
        result = await self._with_retries(
            "Subgraph query",
            lambda: self._execute_query(document, variables, operation_name),
        )
        logger.debug(f"Received subgraph data for operation {operation_name or '<anonymous>'}")
        return result

    async def subscribe(
        self,
        document: DocumentNode,
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Stream subscription events from the subgraph over a websocket"""
        if not self.subscription_url:
            raise ValueError("Subscription URL must be provided to subscribe")
        transport = AIOHTTPWebsocketsTransport(url=self.subscription_url, headers=self._headers())
        async with Client(transport=transport, schema=self.schema) as session:
            logger.info(f"Opened subgraph subscription {operation_name or '<anonymous>'}")
            async for data in session.subscribe(
                document, variable_values=variables, operation_name=operation_name
            ):
                yield data
        logger.info(f"Subgraph subscription {operation_name or '<anonymous>'} completed")
