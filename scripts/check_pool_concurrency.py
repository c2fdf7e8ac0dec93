#!/usr/bin/env python3
"""
Check driver pool behaviour against a live server: run N statements in parallel.

Each worker runs a slow statement (MySQL: SELECT SLEEP(n); Oracle: a catalog
cross join scaled by --sleep) that holds its pooled connection meanwhile.
With N > connectionLimit the extra workers wait for a free connection; they
only fail if acquireTimeout elapses first.

Usage:
  python scripts/check_pool_concurrency.py --family mysql --host localhost \
      --database app --user app --password app --limit 2 --concurrent 6
  Or set env: DB_FAMILY, DB_HOST, DB_PORT, DB_DATABASE, DB_SERVICE, DB_USER, DB_PASSWORD
"""

import argparse
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from multidb import DatabaseLayerError, PoolTimeoutError, SchemaLoader, create_driver

_SLOW_SQL = {
    "mysql": "SELECT SLEEP({sleep}) AS slept",
    "oracle": (
        "SELECT COUNT(*) AS n FROM all_objects a CROSS JOIN "
        "(SELECT LEVEL FROM DUAL CONNECT BY LEVEL <= {sleep}) b"
    ),
}


def run_one(driver, sql: str, index: int) -> tuple[int, str, float]:
    """Run one statement; return (index, outcome, elapsed seconds)."""
    started = time.monotonic()
    try:
        driver.execute_query(sql)
        outcome = "ok"
    except PoolTimeoutError:
        outcome = "timeout"
    except DatabaseLayerError as e:
        outcome = f"error: {e}"
    return index, outcome, time.monotonic() - started


def main() -> None:
    parser = argparse.ArgumentParser(description="Run N parallel statements through one driver pool.")
    parser.add_argument("--family", default=os.environ.get("DB_FAMILY", "mysql"))
    parser.add_argument("--host", default=os.environ.get("DB_HOST", "localhost"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("DB_PORT", "0")) or None)
    parser.add_argument("--database", default=os.environ.get("DB_DATABASE"))
    parser.add_argument("--service", default=os.environ.get("DB_SERVICE"))
    parser.add_argument("--user", default=os.environ.get("DB_USER", ""))
    parser.add_argument("--password", default=os.environ.get("DB_PASSWORD", ""))
    parser.add_argument("--limit", type=int, default=2, help="connectionLimit (default 2)")
    parser.add_argument(
        "--acquire-timeout", type=int, default=60000, help="acquireTimeout in ms (default 60000)"
    )
    parser.add_argument("--concurrent", type=int, default=6, help="parallel statements (default 6)")
    parser.add_argument("--sleep", type=int, default=2, help="seconds each statement holds its connection")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    family = args.family.lower()
    if family not in _SLOW_SQL:
        print(f"Error: unsupported family {args.family!r}", file=sys.stderr)
        sys.exit(1)

    raw = {
        "host": args.host,
        "port": args.port,
        "database": args.database,
        "service": args.service,
        "user": args.user,
        "password": args.password,
        "connectionLimit": args.limit,
        "acquireTimeout": args.acquire_timeout,
    }
    loader = SchemaLoader()
    try:
        config = loader.materialize(family, {k: v for k, v in raw.items() if v is not None})
        driver = create_driver(family)
        driver.connect(config)
    except DatabaseLayerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sql = _SLOW_SQL[family].format(sleep=args.sleep)
    print(f"Running {args.concurrent} statements on a pool of {args.limit} ({family} {args.host})")
    print("---")

    results: list[tuple[int, str, float]] = []
    try:
        with ThreadPoolExecutor(max_workers=args.concurrent) as executor:
            futures = [executor.submit(run_one, driver, sql, i) for i in range(1, args.concurrent + 1)]
            for fut in as_completed(futures):
                idx, outcome, elapsed = fut.result()
                results.append((idx, outcome, elapsed))
                print(f"{idx} {outcome} after {elapsed:.1f}s")
    finally:
        driver.disconnect()

    print("---")
    ok = sum(1 for _, o, _ in results if o == "ok")
    timeouts = sum(1 for _, o, _ in results if o == "timeout")
    errors = len(results) - ok - timeouts
    print(f"Done. ok={ok} timeout={timeouts} errors={errors}")
    print("Workers beyond the pool size should finish in later waves, not time out.")


if __name__ == "__main__":
    main()
