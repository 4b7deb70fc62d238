#!/usr/bin/env python3
"""
Follow-up service command line.

Usage:
    followups serve
    followups run-pipeline
    followups records --status pending
    followups sign-callback <follow_up_id> [--dismiss] [--url URL]
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import httpx

from .core.config import Settings
from .core.errors import ConfigurationError, FollowUpError
from .core.observability import configure_logging
from .core.store import FollowUpStore
from .core.workflow import FollowUpStatus
from .hitl.callbacks import build_callback_body, sign_callback
from .hitl.verify import SignatureVerifier

logger = logging.getLogger(__name__)


def cmd_serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from .api.main import create_app

    app = create_app(settings)
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())
    return 0


async def _run_pipeline(settings: Settings) -> int:
    from .api.dependencies import build_services

    services = build_services(settings)
    try:
        result = await services.pipeline.run()
    finally:
        await services.aclose()

    print(json.dumps({
        "staleDealsFound": result.stale_deals_found,
        "followUpsCreated": result.follow_ups_created,
        "records": [r.to_summary() for r in result.records],
        "skipped": result.skipped,
    }, indent=2))
    return 0


def cmd_run_pipeline(settings: Settings, args: argparse.Namespace) -> int:
    settings.require()
    configure_logging(settings.LOG_LEVEL, settings.LOG_STRUCTURED)
    return asyncio.run(_run_pipeline(settings))


def cmd_records(settings: Settings, args: argparse.Namespace) -> int:
    store = FollowUpStore(settings.DB_PATH)
    if args.status:
        records = [r.to_json() for r in store.list_by_status(FollowUpStatus(args.status))]
    else:
        records = store.export_json()
    print(json.dumps(records, indent=2))
    return 0


def cmd_sign_callback(settings: Settings, args: argparse.Namespace) -> int:
    """Post a signed approve/dismiss callback to a running service."""
    if not settings.SLACK_SIGNING_SECRET:
        raise ConfigurationError(["SLACK_SIGNING_SECRET is required"])

    action_id = "dismiss" if args.dismiss else "approve_send"
    body = build_callback_body(args.follow_up_id, action_id)
    headers = sign_callback(SignatureVerifier(settings.SLACK_SIGNING_SECRET), body)
    url = args.url or f"http://localhost:{settings.API_PORT}/webhooks/approval"

    try:
        response = httpx.post(url, content=body, headers=headers, timeout=60.0)
    except httpx.HTTPError as e:
        print(f"Error: callback to {url} failed: {e}", file=sys.stderr)
        return 1
    print(f"{response.status_code} {response.text}")
    return 0 if response.is_success else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="followups", description="Stale-deal follow-up service")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.set_defaults(func=cmd_serve)

    run = sub.add_parser("run-pipeline", help="Run one detect/score/draft/notify pass")
    run.set_defaults(func=cmd_run_pipeline)

    records = sub.add_parser("records", help="Print stored follow-ups as JSON")
    records.add_argument("--status", choices=[s.value for s in FollowUpStatus])
    records.set_defaults(func=cmd_records)

    sign = sub.add_parser("sign-callback", help="Send a signed approval callback")
    sign.add_argument("follow_up_id")
    sign.add_argument("--dismiss", action="store_true", help="Dismiss instead of approve")
    sign.add_argument("--url", default="", help="Callback URL (default: local service)")
    sign.set_defaults(func=cmd_sign_callback)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    try:
        return args.func(settings, args)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2
    except FollowUpError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
