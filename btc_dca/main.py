from __future__ import annotations

import argparse
import sys
from typing import List, Optional, TextIO

from .coingecko import CoinGeckoClient
from .config import DB_PATH, DEFAULT_STRATEGY
from .datastore import SQLiteDataStore
from .engine import DcaSession
from .errors import IngestionError, InputValidationError
from .logger import get_logger
from .models import Recommendation
from .newsletter import broadcast, export_subscribers, list_subscribers, signup
from .strategies import describe_strategies, strategy_keys
from .utils import to_utc_datetime

logger = get_logger(__name__)


def render_market(session: DcaSession, out: TextIO) -> None:
    """Print spot price, trend signals and the risk score."""
    signals = session.signals
    assessment = session.assessment
    out.write(f"Current BTC Price: ${session.spot_price:,.2f}\n")
    out.write(f"{signals.sma_points}-Day SMA: ${signals.sma:,.2f}\n")
    out.write(f"Max Deviation from SMA: ${signals.max_deviation:,.2f}\n")
    out.write(f"Risk Score: {assessment.score:.2f} ({assessment.label}) [{assessment.strategy}]\n")
    for name, value in assessment.components.items():
        out.write(f"  {name}: {value:.4f}\n")


def render_recommendation(recommendation: Optional[Recommendation], out: TextIO) -> None:
    if recommendation is None:
        out.write("Enter a DCA amount above zero to see a recommendation.\n")
        return
    out.write(f"Recommended Purchase: ${recommendation.usd_amount:.2f} (x{recommendation.multiplier:.2f})\n")
    out.write(f"BTC Amount: {recommendation.btc_amount:.8f} BTC\n")


def apply_amount(session: DcaSession, amount: str, out: TextIO) -> bool:
    """Re-derive the recommendation for one amount entry from the cached score."""
    try:
        recommendation = session.recommend(amount)
    except InputValidationError as e:
        out.write(f"{e}\n")
        return False
    render_recommendation(recommendation, out)
    return True


def run_calc(args: argparse.Namespace, out: TextIO, stdin: TextIO, session: Optional[DcaSession] = None) -> int:
    session = session or DcaSession(CoinGeckoClient(), args.strategy)
    now = to_utc_datetime(args.as_of) if args.as_of else None
    if args.as_of and now is None:
        out.write(f"Invalid --as-of value: {args.as_of}\n")
        return 2

    try:
        session.load(now)
    except IngestionError as e:
        logger.error(f"Ingestion failed: {e}")
        out.write(f"{e}\n")
        return 1

    render_market(session, out)
    if args.amount is not None:
        apply_amount(session, args.amount, out)

    if args.interactive:
        out.write("Enter DCA amounts in USD (blank line or EOF to quit).\n")
        for line in stdin:
            line = line.strip()
            if not line:
                break
            apply_amount(session, line, out)
    return 0


def run_strategies(args: argparse.Namespace, out: TextIO) -> int:
    for key, text in describe_strategies().items():
        marker = "*" if key == DEFAULT_STRATEGY else " "
        out.write(f"{marker} {key:<16} {text}\n")
    return 0


def run_signup(args: argparse.Namespace, out: TextIO, store: SQLiteDataStore) -> int:
    try:
        signup(store, args.email, newsletter=not args.no_newsletter)
    except InputValidationError as e:
        out.write(f"{e}\n")
        return 1
    out.write("Signup successful.\n")
    return 0


def run_subscribers(args: argparse.Namespace, out: TextIO, store: SQLiteDataStore) -> int:
    if args.export:
        count = export_subscribers(store, args.export)
        out.write(f"Exported {count} emails to {args.export}\n")
        return 0
    emails = list_subscribers(store)
    if not emails:
        out.write("No subscribers yet.\n")
    for email in emails:
        out.write(f"{email}\n")
    return 0


def run_broadcast(args: argparse.Namespace, out: TextIO, store: SQLiteDataStore) -> int:
    try:
        count = broadcast(store, args.subject, args.message)
    except InputValidationError as e:
        out.write(f"{e}\n")
        return 1
    out.write(f"Email sent to {count} subscribers.\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="btc-dca", description="Bitcoin DCA calculator")
    parser.add_argument("--db", default=DB_PATH, help="SQLite file for subscribers")
    sub = parser.add_subparsers(dest="command", required=True)

    calc = sub.add_parser("calc", help="Fetch market data and recommend a purchase")
    calc.add_argument("--amount", help="Base DCA amount in USD")
    calc.add_argument("--strategy", choices=strategy_keys(), default=DEFAULT_STRATEGY)
    calc.add_argument("--interactive", action="store_true", help="Read amounts from stdin")
    calc.add_argument("--as-of", help="Evaluation instant for time-based signals (ISO-8601)")

    sub.add_parser("strategies", help="List risk strategies")

    signup_cmd = sub.add_parser("signup", help="Subscribe an email to the newsletter")
    signup_cmd.add_argument("email")
    signup_cmd.add_argument("--no-newsletter", action="store_true")

    subscribers = sub.add_parser("subscribers", help="List or export subscribers")
    subscribers.add_argument("--export", help="Write subscribers to this CSV file")

    broadcast_cmd = sub.add_parser("broadcast", help="Send a message to all subscribers")
    broadcast_cmd.add_argument("--subject", required=True)
    broadcast_cmd.add_argument("--message", required=True)
    return parser


def main(argv: Optional[List[str]] = None, out: TextIO = sys.stdout, stdin: TextIO = sys.stdin) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "calc":
        return run_calc(args, out, stdin)
    if args.command == "strategies":
        return run_strategies(args, out)

    store = SQLiteDataStore(args.db)
    store.initialize()
    if args.command == "signup":
        return run_signup(args, out, store)
    if args.command == "subscribers":
        return run_subscribers(args, out, store)
    return run_broadcast(args, out, store)


if __name__ == "__main__":
    sys.exit(main())
