#!/usr/bin/env python3
"""
Ramp load against POST /author of the library API.

Each virtual user loops: build a random author -> POST it -> add
sending+receiving time to the `my_trend` series -> check status 201 ->
pause 0.1s. Default load shape is one stage ramping to 100 VUs over 1m.

Writes <out-dir>/load_summary.json and .md.
"""
from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from loadtest.core.config import Settings, Stage
from loadtest.core.errors import LoadTestError, error_body
from loadtest.core.logging import setup_logging
from loadtest.services.client import check_health
from loadtest.services.iteration import IterationContext
from loadtest.services.report import build_summary, write_outputs
from loadtest.services.runner import run_load


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="loadtest")
    ap.add_argument("--url", default=None, help="Target URL (default: settings.target_url)")
    ap.add_argument(
        "--stage",
        action="append",
        default=None,
        metavar="DURATION:TARGET",
        help="Ramp stage, repeatable, e.g. --stage 1m:100",
    )
    ap.add_argument("--start-vus", type=int, default=None)
    ap.add_argument("--sleep", type=float, default=None, help="Pause after each iteration (seconds)")
    ap.add_argument("--timeout", type=float, default=None, help="Per-request timeout (default: client default)")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--out-dir", default=None)
    ap.add_argument("--skip-health-check", action="store_true")
    return ap


def settings_from_args(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    s = base or Settings()
    updates = {}
    if args.url:
        updates["target_url"] = args.url
    if args.stage:
        updates["stages"] = [Stage.from_cli(x) for x in args.stage]
    if args.start_vus is not None:
        updates["start_vus"] = args.start_vus
    if args.sleep is not None:
        updates["sleep_s"] = args.sleep
    if args.timeout is not None:
        updates["request_timeout_s"] = args.timeout
    if args.seed is not None:
        updates["seed"] = args.seed
    if args.out_dir:
        updates["results_dir"] = args.out_dir
    return s.model_copy(update=updates)


async def _run(settings: Settings, skip_health_check: bool):
    logger = setup_logging(settings)
    if not skip_health_check:
        await check_health(settings.health_url())
        logger.info("health check passed: %s", settings.health_url())

    ctx = IterationContext.for_run(settings, logger)
    return await run_load(settings, ctx=ctx)


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        settings = settings_from_args(args)
        result = asyncio.run(_run(settings, args.skip_health_check))
    except LoadTestError as e:
        print(json.dumps(error_body(e.code, e.message, e.param), indent=2))
        raise SystemExit(1)

    summary = build_summary(result)
    paths = write_outputs(summary, settings.abs_results_dir())
    print(json.dumps(asdict(summary), indent=2))
    print(f"\nWrote: {paths['json']} and {paths['md']}")


if __name__ == "__main__":
    main()
