#!/usr/bin/env python3
"""
Run one cost report invocation from the command line
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from penny.config import Config
from penny.core import PennyError, QueryRequest
from penny.executors import DuckDBQueryEngine
from penny.logs import configure_logging
from penny.pipeline import ReportPipeline


def parse_args():
    parser = argparse.ArgumentParser(description="Cloud Cost Report")
    parser.add_argument('--config', default='config',
                        help='Configuration directory (default: config)')
    parser.add_argument('--query-file', default='queries/cost_by_service.sql',
                        help='SQL file to run (default: queries/cost_by_service.sql)')
    parser.add_argument('--query-name', default=None,
                        help='Logical query name (default: SQL file name)')
    parser.add_argument('--query-type', default='cost_report',
                        help='Query type tag (default: cost_report)')
    parser.add_argument('--database', default='cur_database',
                        help='Athena database (default: cur_database)')
    parser.add_argument('--output-location', default='s3://penny-athena-results/query-results/',
                        help='Athena result location')
    parser.add_argument('--engine', choices=['athena', 'duckdb'], default='athena',
                        help='Query engine (default: athena)')
    parser.add_argument('--duckdb-setup', action='append', default=[],
                        help='SQL run before the query on the duckdb engine (repeatable)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Write the report to --out instead of sending it')
    parser.add_argument('--out', default='reports',
                        help='Output directory for --dry-run (default: reports)')
    return parser.parse_args()


async def main() -> int:
    args = parse_args()

    try:
        config = Config(args.config).pipeline()
    except PennyError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(config.log_level)

    query_file = Path(args.query_file)
    request = QueryRequest(
        sql=query_file.read_text(),
        database=args.database,
        output_location=args.output_location,
        query_name=args.query_name or query_file.stem,
        query_type=args.query_type,
    )

    engine = None
    if args.engine == 'duckdb':
        engine = DuckDBQueryEngine(setup_sql=args.duckdb_setup, page_size=config.result_page_size)

    try:
        pipeline = ReportPipeline.from_config(config, engine=engine, send=not args.dry_run)
    except PennyError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if not args.dry_run:
        result = await pipeline.run(request)
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.ok else 1

    try:
        built = await pipeline.build(request, pipeline.deadline())
    except PennyError as e:
        print(f"Report failed ({e.kind}): {e}", file=sys.stderr)
        return 1

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = f"{request.query_name}_{built.report.as_of.isoformat()}"
    (out_dir / f"{stem}.txt").write_text(built.document.text)
    (out_dir / f"{stem}.html").write_text(built.document.html)
    for attachment in built.document.attachments:
        (out_dir / attachment.filename).write_bytes(attachment.content)

    print(built.document.subject)
    print(built.document.text)
    print(f"Report written to {out_dir}/")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
