"""
Query user sessions using the hierarchical partition key patterns

Usage:
    hpk-query full --tenant MidMarket-Inc --user user-192 --session session-5af6ab47
    hpk-query partial --tenant LocalShops-SME --user user-42
    hpk-query field --name tenantId --value Enterprise-Corp
    hpk-query point --id <item id> --tenant SmallBiz-LLC --user user-42 --session session-0361ef4c
    hpk-query demo
"""

import argparse
import sys
from typing import Iterable

from dotenv import load_dotenv

from hpksessions.database.core import CosmosCore, create_cosmos_client
from hpksessions.database.models import QueryResult, UserSession
from hpksessions.dispatcher import (
    FullKeyQuery,
    PointRead,
    QueryDispatcher,
    SessionField,
    TenantAndUserQuery,
)
from hpksessions.exceptions import InvalidQueryRequest, PointReadError, SetupError, StoreError
from hpksessions.utils.config import CosmosSettings, create_logger

logger = create_logger(__name__)

SEPARATOR = "=========================================="


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query user sessions stored with hierarchical partition keys")
    parser.add_argument("--endpoint", help="Cosmos DB account endpoint (default: $COSMOS_DB_ENDPOINT)")
    parser.add_argument("--database", help="Database name (default: $COSMOS_DB_DATABASE_NAME or multi-tenant)")
    parser.add_argument("--container", help="Container name (default: $COSMOS_DB_CONTAINER_NAME or user-sessions)")
    subparsers = parser.add_subparsers(dest="pattern", required=True)

    full = subparsers.add_parser("full", help="Query with the full partition key (single partition)")
    full.add_argument("--tenant", required=True)
    full.add_argument("--user", required=True)
    full.add_argument("--session", required=True)

    partial = subparsers.add_parser("partial", help="Query with the tenantId + userId key prefix")
    partial.add_argument("--tenant", required=True)
    partial.add_argument("--user", required=True)

    field = subparsers.add_parser("field", help="Cross-partition query on a single key field")
    field.add_argument("--name", required=True, help="One of: tenantId, userId, sessionId")
    field.add_argument("--value", required=True)

    point = subparsers.add_parser("point", help="Point read by id and full partition key")
    point.add_argument("--id", required=True)
    point.add_argument("--tenant", required=True)
    point.add_argument("--user", required=True)
    point.add_argument("--session", required=True)

    subparsers.add_parser("demo", help="Run the sample sequence of every query pattern")
    return parser


def print_session(session: UserSession) -> None:
    print("ID:", session.id)
    print("Tenant ID:", session.tenant_id)
    print("User ID:", session.user_id)
    print("Session ID:", session.session_id)
    print("Activity:", session.activity)
    print("Timestamp:", session.timestamp.isoformat())


def print_results(title: str, results: Iterable[QueryResult]) -> int:
    """結果を表示して件数を返す。デコードに失敗したアイテムはエラーとして表示して続行する。"""
    print(title)
    print(SEPARATOR)
    count = 0
    for result in results:
        if result.ok:
            print_session(result.session)
            count += 1
        else:
            print("Error:", result.error)
        print("RUs consumed:", result.request_charge)
        print(SEPARATOR)
    print(f"{count} item(s)")
    return count


def run_demo(dispatcher: QueryDispatcher) -> None:
    print_results(
        "Querying with full partition key: MidMarket-Inc/user-192/session-5af6ab47",
        dispatcher.dispatch(FullKeyQuery("MidMarket-Inc", "user-192", "session-5af6ab47")),
    )
    print_results(
        "Results for tenantId: LocalShops-SME and userId: user-42",
        dispatcher.dispatch(TenantAndUserQuery("LocalShops-SME", "user-42")),
    )
    for field, value in (
        (SessionField.TENANT_ID, "Enterprise-Corp"),
        (SessionField.USER_ID, "user-42"),
        (SessionField.SESSION_ID, "session-0361ef4c"),
    ):
        print_results(f"Results for {field.value}: {value}", dispatcher.single_field(field, value))

    try:
        session = dispatcher.point_read("c0ba6ff6-a622-4b30-bcd3-b92960336976", "SmallBiz-LLC", "user-42", "session-0361ef4c")
    except PointReadError as e:
        # サンプルの id はロードごとに変わるため、デモでは失敗を表示して終える
        print("Point read failed:", e)
        return
    print("Point Read Result:")
    print_session(session)
    print("RUs consumed:", dispatcher.last_request_charge)


def run(dispatcher: QueryDispatcher, args: argparse.Namespace) -> None:
    if args.pattern == "full":
        print_results(
            f"Querying with full partition key: {args.tenant}/{args.user}/{args.session}",
            dispatcher.dispatch(FullKeyQuery(args.tenant, args.user, args.session)),
        )
    elif args.pattern == "partial":
        print_results(
            f"Results for tenantId: {args.tenant} and userId: {args.user}",
            dispatcher.dispatch(TenantAndUserQuery(args.tenant, args.user)),
        )
    elif args.pattern == "field":
        print_results(f"Results for {args.name}: {args.value}", dispatcher.single_field(args.name, args.value))
    elif args.pattern == "point":
        results = dispatcher.dispatch(PointRead(args.id, args.tenant, args.user, args.session))
        print_results(f"Point Read Result for: {args.id} {args.tenant} {args.user} {args.session}", results)
    else:
        run_demo(dispatcher)


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = CosmosSettings.from_env(
            endpoint=args.endpoint,
            database_name=args.database,
            container_name=args.container,
        )
        client = create_cosmos_client(settings)
        core = CosmosCore(client, settings.database_name, request_timeout=settings.request_timeout)
        store = core.get_container(settings.container_name)
    except SetupError as e:
        logger.error(f"セットアップに失敗しました: {e}")
        return 1

    try:
        run(QueryDispatcher(store), args)
    except InvalidQueryRequest as e:
        logger.error(f"不正なクエリ要求です: {e}")
        return 1
    except (PointReadError, StoreError) as e:
        logger.error(f"クエリに失敗しました: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
