"""ASGI application serving the gateway schema.

GraphQL over HTTP and both websocket subprotocols are handled by ariadne:
``graphql-transport-ws`` when the client asks for it, otherwise the legacy
``graphql-ws`` protocol of subscriptions-transport-ws.
"""
import logging
from ariadne.asgi import GraphQL
from ariadne.asgi.handlers import GraphQLTransportWSHandler, GraphQLWSHandler
from ariadne.asgi.handlers.base import GraphQLWebsocketHandlerBase
from ariadne.explorer import ExplorerHttp405
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket
from services.gateway_service import GatewayExecutionContext, GatewayService

logger = logging.getLogger(__name__)

GRAPHQL_TRANSPORT_WS = "graphql-transport-ws"


def graphql_app(gateway: GatewayService, websocket_handler: GraphQLWebsocketHandlerBase) -> GraphQL:
    return GraphQL(
        gateway.schema,
        root_value=gateway.root_value,
        execute_get_queries=True,
        explorer=ExplorerHttp405(),
        execution_context_class=GatewayExecutionContext,
        websocket_handler=websocket_handler,
    )


class GatewayEndpoint:
    """Routes websockets to the handler for the negotiated subprotocol"""

    def __init__(self, gateway: GatewayService):
        self.transport_ws = graphql_app(gateway, GraphQLTransportWSHandler())
        self.legacy_ws = graphql_app(gateway, GraphQLWSHandler())

    async def handle_request(self, request: Request):
        return await self.transport_ws.handle_request(request)

    async def handle_websocket(self, websocket: WebSocket):
        if GRAPHQL_TRANSPORT_WS in websocket.scope.get("subprotocols", []):
            logger.debug(f"Websocket from {websocket.client} using {GRAPHQL_TRANSPORT_WS}")
            await self.transport_ws.handle_websocket(websocket)
        else:
            logger.debug(f"Websocket from {websocket.client} using graphql-ws")
            await self.legacy_ws.handle_websocket(websocket)


async def handle_health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(gateway: GatewayService, path: str = "/") -> Starlette:
    """Build the ASGI application serving ``gateway`` at ``path``"""
    endpoint = GatewayEndpoint(gateway)
    app = Starlette(
        routes=[
            Route("/health", handle_health, methods=["GET"]),
            Route(path, endpoint.handle_request, methods=["GET", "POST"]),
            WebSocketRoute(path, endpoint.handle_websocket),
        ]
    )
    logger.info(f"GraphQL endpoint mounted at {path}")
    return app
