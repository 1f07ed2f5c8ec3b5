import logging
import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional
from aiohttp import ClientError
from ariadne import graphql, subscribe
from ariadne.types import GraphQLResult, SubscriptionResult
from gql.transport.exceptions import TransportError, TransportQueryError
from graphql import (
    DocumentNode,
    ExecutionContext,
    GraphQLError,
    GraphQLResolveInfo,
    GraphQLSchema,
    OperationDefinitionNode,
    OperationType,
    get_operation_ast,
)
from clients.subgraph_client import SubgraphClient
from services.query_planner import QueryPlanner, forwarded_variables
from services.schema_service import DerivedFieldIndex

logger = logging.getLogger(__name__)

UPSTREAM_ERRORS = (TransportError, ClientError, asyncio.TimeoutError)


@dataclass
class UpstreamResult:
    """Subgraph response used as the root value of local execution"""
    data: Optional[Dict[str, Any]]
    errors: List[GraphQLError] = field(default_factory=list)


class GatewayExecutionContext(ExecutionContext):
    """Executes against an ``UpstreamResult``, keeping the subgraph's errors"""

    def execute_operation(self, operation: OperationDefinitionNode, root_value: Any) -> Any:
        if isinstance(root_value, UpstreamResult):
            self.errors.extend(root_value.errors)
            if root_value.data is None:
                return None
            root_value = root_value.data
        return super().execute_operation(operation, root_value)


def remote_errors(error: TransportQueryError) -> List[GraphQLError]:
    """Convert subgraph error payloads; their locations point into the rewritten document"""
    errors = []
    for payload in error.errors or [{"message": str(error)}]:
        if not isinstance(payload, Mapping):
            payload = {"message": str(payload)}
        errors.append(
            GraphQLError(
                payload.get("message", "Subgraph error"),
                path=payload.get("path"),
                extensions=payload.get("extensions"),
            )
        )
    return errors


def upstream_failure(error: BaseException) -> GraphQLError:
    logger.error(f"Upstream subgraph request failed: {error!r}")
    return GraphQLError(f"Upstream subgraph request failed: {error}", original_error=error)


def operation_label(operation: OperationDefinitionNode) -> Optional[str]:
    return operation.name.value if operation.name else None


class GatewayService:
    """Serves the extended schema: remote fields are fetched, derived fields computed.

    Requests go through ariadne; ``root_value`` fetches the subgraph data an
    operation needs before ariadne executes it against the extended schema.
    """

    def __init__(
        self,
        schema: GraphQLSchema,
        derived_fields: DerivedFieldIndex,
        subgraph_client: SubgraphClient,
    ):
        self.schema = schema
        self.subgraph_client = subgraph_client
        self.planner = QueryPlanner(schema, derived_fields)
        if schema.subscription_type is not None:
            for subscription_field in schema.subscription_type.fields.values():
                subscription_field.subscribe = self.subscribe_field

    async def fetch(
        self,
        document: DocumentNode,
        operation: OperationDefinitionNode,
        variables: Optional[Dict[str, Any]],
    ) -> UpstreamResult:
        """Fetch what ``operation`` needs from the subgraph; failures become errors"""
        remote_document = self.planner.plan(document, operation)
        if remote_document is None:
            return UpstreamResult(data={})

        operation_name = operation_label(operation)
        try:
            data = await self.subgraph_client.execute(
                remote_document, forwarded_variables(remote_document, variables), operation_name
            )
        except TransportQueryError as e:
            if e.data is None:
                logger.warning(f"Subgraph rejected operation {operation_name or '<anonymous>'}: {e}")
            return UpstreamResult(data=e.data, errors=remote_errors(e))
        except GraphQLError as e:
            logger.error(f"Subgraph document for {operation_name or '<anonymous>'} is invalid: {e}")
            return UpstreamResult(data=None, errors=[e])
        except UPSTREAM_ERRORS as e:
            return UpstreamResult(data=None, errors=[upstream_failure(e)])
        return UpstreamResult(data=data)

    async def root_value(
        self,
        _context: Any,
        operation_name: Optional[str],
        variables: Optional[Dict[str, Any]],
        document: DocumentNode,
    ) -> Optional[UpstreamResult]:
        """ariadne root value hook; subscriptions fetch per event instead"""
        operation = get_operation_ast(document, operation_name)
        if operation is None or operation.operation == OperationType.SUBSCRIPTION:
            return None
        return await self.fetch(document, operation, variables)

    def subscribe_field(self, _root: Any, info: GraphQLResolveInfo, **_args) -> AsyncIterator[Dict[str, Any]]:
        if not self.subgraph_client.subscription_url:
            raise GraphQLError("Subscriptions are not configured for this gateway.")
        document = DocumentNode(definitions=(info.operation, *info.fragments.values()))
        remote_document = self.planner.plan(document, info.operation)
        return self._subscription_events(
            remote_document,
            forwarded_variables(remote_document, info.variable_values),
            operation_label(info.operation),
        )

    async def _subscription_events(
        self,
        remote_document: DocumentNode,
        variables: Optional[Dict[str, Any]],
        operation_name: Optional[str],
    ) -> AsyncIterator[Dict[str, Any]]:
        try:
            async for data in self.subgraph_client.subscribe(remote_document, variables, operation_name):
                yield data
        except TransportQueryError as e:
            logger.warning(f"Subgraph ended subscription {operation_name or '<anonymous>'}: {e}")
            raise remote_errors(e)[0] from e
        except UPSTREAM_ERRORS as e:
            raise upstream_failure(e) from e

    async def execute(
        self,
        query: Optional[str],
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> GraphQLResult:
        """Execute a query or mutation, returning ariadne's ``(success, response)``"""
        return await graphql(
            self.schema,
            {"query": query, "variables": variables, "operationName": operation_name},
            root_value=self.root_value,
            execution_context_class=GatewayExecutionContext,
        )

    async def stream(
        self,
        query: Optional[str],
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
    ) -> SubscriptionResult:
        """Start a subscription, returning ariadne's ``(success, results or errors)``"""
        return await subscribe(
            self.schema,
            {"query": query, "variables": variables, "operationName": operation_name},
            root_value=self.root_value,
        )
