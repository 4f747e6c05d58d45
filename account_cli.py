#!/usr/bin/env python3
"""
Account Management CLI

Command-line tool for operating the panel from the server terminal.
Every command goes through the same panel actions the front-end uses and
prints their messages.

Usage:
    python account_cli.py init-db
    python account_cli.py register <domain> <email_account_contact> [--name NAME] [--customer-email EMAIL]
    python account_cli.py show <account_id>
    python account_cli.py home <account_id>
    python account_cli.py balances <account_id> [--currency XBT]
    python account_cli.py transactions <account_id> [--type PAYMENT] [--status PAID] [--limit 20] [--all]
    python account_cli.py settings <account_id>
    python account_cli.py set-setting <account_id> <key> <value>
"""
import sys
import argparse
import asyncio
import json
from pathlib import Path

# Add project root to path (file is in root)
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.config import get_settings
from backend.app.db.session import get_async_engine, init_db
from backend.app.logging_config import configure_logging
from backend.app.schemas.common import PNResult, PNSeverity
from backend.app.services import panel_actions


def print_result(result: PNResult) -> bool:
    """Print messages (and body on success) of a panel result."""
    for message in result.messages:
        icon = "✅" if message.severity == PNSeverity.INFO else "❌"
        print(f"{icon} {message.text}")

    if result.success and result.body is not None:
        if isinstance(result.body, list):
            payload = [item.model_dump(mode="json") for item in result.body]
        else:
            payload = result.body.model_dump(mode="json")
        print(json.dumps(payload, indent=2))

    return result.success


def parse_setting_value(raw: str):
    """Interpret a CLI value as JSON when possible (15, true, null), else as plain text."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


async def cmd_init_db():
    """Create the database schema."""
    engine = get_async_engine()
    await init_db(engine)
    await engine.dispose()
    print(f"✅ Database ready: {engine.url.database}")
    return True


async def cmd_register(domain: str, email: str, name: str = None, customer_email: str = None):
    """Register a new account."""
    raw_input = {"domain": domain, "email_account_contact": email}
    if name:
        raw_input["name"] = name
    if customer_email:
        raw_input["email_customer_contact"] = customer_email

    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.register_account(session, raw_input)
    await engine.dispose()
    return print_result(result)


async def cmd_show(account_id: str):
    """Show an account."""
    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.get_account(session, account_id)
    await engine.dispose()
    return print_result(result)


async def cmd_home(account_id: str):
    """Show the home page of an account."""
    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.get_home(session, account_id)
    await engine.dispose()
    return print_result(result)


async def cmd_balances(account_id: str, currency: str = None):
    """Show the balances of an account."""
    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.get_account_balance(session, account_id, currency)
    await engine.dispose()
    return print_result(result)


async def cmd_transactions(account_id: str, filters: dict):
    """List the transactions of an account."""
    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.get_transactions(session, account_id, filters)
    await engine.dispose()
    return print_result(result)


async def cmd_settings(account_id: str):
    """Show the settings of an account."""
    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.get_account_settings(session, account_id)
    await engine.dispose()
    return print_result(result)


async def cmd_set_setting(account_id: str, key: str, value: str):
    """Change one setting of an account."""
    engine = get_async_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await panel_actions.patch_account_settings(
            session, account_id, {key: parse_setting_value(value)}
            )
    await engine.dispose()
    return print_result(result)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CoinPanel Account Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python account_cli.py init-db
  python account_cli.py register shop.example.org owner@shop.example.org --name "My Shop"
  python account_cli.py balances 3f2c... --currency XBT
  python account_cli.py transactions 3f2c... --status PAID --limit 10
  python account_cli.py set-setting 3f2c... payment_expiry_minutes 30
        """
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-db", help="Create the database schema")

    register_parser = subparsers.add_parser("register", help="Register an account")
    register_parser.add_argument("domain", help="Merchant domain")
    register_parser.add_argument("email", help="Account contact e-mail")
    register_parser.add_argument("--name", help="Display name")
    register_parser.add_argument("--customer-email", help="Customer contact e-mail")

    show_parser = subparsers.add_parser("show", help="Show an account")
    show_parser.add_argument("account_id", help="Account ID")

    home_parser = subparsers.add_parser("home", help="Show the home page of an account")
    home_parser.add_argument("account_id", help="Account ID")

    balances_parser = subparsers.add_parser("balances", help="Show balances")
    balances_parser.add_argument("account_id", help="Account ID")
    balances_parser.add_argument("--currency", help="Only this currency")

    tx_parser = subparsers.add_parser("transactions", help="List transactions")
    tx_parser.add_argument("account_id", help="Account ID")
    tx_parser.add_argument("--type", help="PAYMENT, REFUND, DEPOSIT or WITHDRAWAL")
    tx_parser.add_argument("--status", help="PENDING, PAID, EXPIRED or CANCELLED")
    tx_parser.add_argument("--limit", type=int, help="Max results")
    tx_parser.add_argument("--offset", type=int, help="Skip this many results")
    tx_parser.add_argument("--all", action="store_true", help="Include invalidated transactions")

    settings_parser = subparsers.add_parser("settings", help="Show settings")
    settings_parser.add_argument("account_id", help="Account ID")

    set_parser = subparsers.add_parser("set-setting", help="Change one setting")
    set_parser.add_argument("account_id", help="Account ID")
    set_parser.add_argument("key", help="Setting name")
    set_parser.add_argument("value", help="New value (JSON literals accepted)")

    return parser


def transaction_filters(args: argparse.Namespace) -> dict:
    """Only the options actually given become filters."""
    filters = {
        key: getattr(args, key)
        for key in ("type", "status", "limit", "offset")
        if getattr(args, key) is not None
        }
    if args.all:
        filters["only_valid"] = False
    return filters


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Logs go to stderr, stdout carries the command output
    configure_logging(
        args.log_level or get_settings().LOG_LEVEL,
        enable_file_logging=False,
        console_stream=sys.stderr,
        )

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "init-db":
        ok = asyncio.run(cmd_init_db())
    elif args.command == "register":
        ok = asyncio.run(cmd_register(args.domain, args.email, args.name, args.customer_email))
    elif args.command == "show":
        ok = asyncio.run(cmd_show(args.account_id))
    elif args.command == "home":
        ok = asyncio.run(cmd_home(args.account_id))
    elif args.command == "balances":
        ok = asyncio.run(cmd_balances(args.account_id, args.currency))
    elif args.command == "transactions":
        ok = asyncio.run(cmd_transactions(args.account_id, transaction_filters(args)))
    elif args.command == "settings":
        ok = asyncio.run(cmd_settings(args.account_id))
    else:
        ok = asyncio.run(cmd_set_setting(args.account_id, args.key, args.value))

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
