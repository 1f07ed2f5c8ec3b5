import asyncio
import logging
import sys
import uvicorn
from dotenv import load_dotenv
from api.app import create_app
from clients.subgraph_client import SubgraphClient
from config.server import get_graphql_path, get_host, get_port
from config.subgraphs import get_subgraph_url, get_subgraph_ws_url
from resolvers.compound import DERIVED_FIELDS
from services.gateway_service import GatewayService
from services.schema_service import build_gateway_schema
from utils.logging import setup_logging

# Initialize logger for the module
logger = logging.getLogger(__name__)


async def create_gateway() -> GatewayService:
    """Introspect the subgraph and build the extended gateway schema."""
    subgraph_client = SubgraphClient(get_subgraph_url(), get_subgraph_ws_url())
    remote_schema = await subgraph_client.fetch_schema()
    schema, derived_fields = build_gateway_schema(remote_schema, DERIVED_FIELDS)
    return GatewayService(schema, derived_fields, subgraph_client)


async def serve():
    host, port, path = get_host(), get_port(), get_graphql_path()

    logger.info("Create gateway schema")
    gateway = await create_gateway()

    logger.info("Create HTTP server")
    config = uvicorn.Config(create_app(gateway, path=path), host=host, port=port, log_config=None)
    await uvicorn.Server(config).serve()


def main():
    load_dotenv()
    setup_logging()  # Configure logging before anything else

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Shutting down.")
    except ValueError as ve:
        logger.error(f"Configuration error: {ve}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Server crashed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
