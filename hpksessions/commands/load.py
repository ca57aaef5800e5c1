"""
Load synthetic user sessions into a Cosmos DB container with hierarchical partition keys

The container is created with the partition key paths /tenantId -> /userId -> /sessionId
if it does not exist yet.

Usage:
    hpk-load --rows 100 --endpoint https://<account>.documents.azure.com:443/

Environment variables (flags take precedence):
    COSMOS_DB_ENDPOINT, COSMOS_DB_ACCOUNT_KEY, COSMOS_DB_DATABASE_NAME, COSMOS_DB_CONTAINER_NAME
"""

import argparse
import random
import sys

from dotenv import load_dotenv

from hpksessions.database.core import CosmosCore, create_cosmos_client
from hpksessions.database.keys import HIERARCHY_PATHS
from hpksessions.exceptions import BatchLoadError, SetupError
from hpksessions.generator import SessionGenerator
from hpksessions.loader import RecordLoader
from hpksessions.utils.config import CosmosSettings, create_logger

logger = create_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load synthetic user sessions into Azure Cosmos DB")
    parser.add_argument("--rows", type=int, default=100, help="Number of sessions to generate (default: 100)")
    parser.add_argument("--endpoint", help="Cosmos DB account endpoint (default: $COSMOS_DB_ENDPOINT)")
    parser.add_argument("--database", help="Database name (default: $COSMOS_DB_DATABASE_NAME or multi-tenant)")
    parser.add_argument("--container", help="Container name (default: $COSMOS_DB_CONTAINER_NAME or user-sessions)")
    parser.add_argument("--throughput", type=int, help="Provisioned container throughput in RU/s (default: 400)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible tenant/user distributions")
    return parser


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    if args.rows < 0:
        logger.error("--rows must be >= 0")
        return 2

    try:
        settings = CosmosSettings.from_env(
            endpoint=args.endpoint,
            database_name=args.database,
            container_name=args.container,
            throughput=args.throughput,
        )
        client = create_cosmos_client(settings)
        core = CosmosCore(client, settings.database_name, request_timeout=settings.request_timeout)
        store = core.ensure_container(settings.container_name, HIERARCHY_PATHS, settings.throughput)
    except SetupError as e:
        logger.error(f"セットアップに失敗しました: {e}")
        return 1

    generator = SessionGenerator(rng=random.Random(args.seed) if args.seed is not None else None)
    loader = RecordLoader(store, generator)

    try:
        report = loader.load(args.rows)
    except BatchLoadError as e:
        logger.error(f"Batch completed with failures: succeeded={e.report.succeeded} failed={e.report.failed}")
        return 1

    print(f"Loaded {report.succeeded} sessions into {settings.database_name}/{settings.container_name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
