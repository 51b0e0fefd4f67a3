from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from salesboard.core.config import get_settings
from salesboard.live.viewer import LeaderboardViewer


def _print_leaderboard(items: list[dict[str, Any]]) -> None:
    print("-" * 40)
    if not items:
        print("No sales yet.")
    for item in items:
        seller = item.get("seller") or {}
        print(f"{item['rank']:>3}. {seller.get('display_name', '?'):<24} {item['total']:>10}  ({item['count']})")


def _print_sale(data: dict[str, Any]) -> None:
    print(f"*** {data.get('seller_name', 'Someone')} closed a sale of {data.get('amount')} ***")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Follow a campaign leaderboard in TV mode.")
    parser.add_argument("--base-url", required=True, help="Example: http://localhost:8000")
    parser.add_argument("--token", required=True, help="Bearer access token of a company member.")
    parser.add_argument("--campaign-id", required=True)
    parser.add_argument("--api-prefix", default="/api/v1")
    parser.add_argument("--poll-interval", type=float, default=get_settings().leaderboard_poll_interval_seconds)
    parser.add_argument("--log-level", default="WARNING")
    return parser


def main() -> None:
    args = build_parser().parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s %(message)s")
    viewer = LeaderboardViewer(
        base_url=args.base_url,
        token=args.token,
        campaign_id=args.campaign_id,
        api_prefix=args.api_prefix,
        poll_interval_seconds=args.poll_interval,
        on_leaderboard=_print_leaderboard,
        on_sale=_print_sale,
    )
    try:
        asyncio.run(viewer.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
