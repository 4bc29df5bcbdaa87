"""otpdesk CLI — unified entry point.

Usage:
    python -m otpdesk verify CARD_CODE   # Redeem a card and cache its accounts
    python -m otpdesk refresh            # Re-verify the last card code
    python -m otpdesk codes              # Live 2FA codes (Ctrl+C to stop)
    python -m otpdesk codes --once       # Print the current codes and exit
    python -m otpdesk status             # Card expiration status
    python -m otpdesk clear              # Forget the cached card and accounts
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from otpdesk.auth.totp import TOTP_STEP, seconds_remaining
from otpdesk.auth.verification import VerificationClient, verify_and_store
from otpdesk.codes.scheduler import build_snapshot
from otpdesk.codes.view import AccountCodesView
from otpdesk.config import settings
from otpdesk.errors import OtpDeskError
from otpdesk.models import CardSession, CodeSnapshot, ExpirationStatus
from otpdesk.session.expiration import ExpirationMonitor
from otpdesk.session.store import SessionStore

logger = logging.getLogger(__name__)


def _print_accounts(session: CardSession) -> None:
    info = session.card_info
    print(f"\nCard: {info.type_name or info.type or '?'}  expires {info.expire_time or '?'}  ({info.status or '?'})")
    print(f"\n{'ID':>6} {'Email':<32} {'Status':<12} {'2FA'}")
    print("-" * 60)
    for a in session.accounts:
        print(f"  {a.id:>4} {a.email:<32} {(a.status_name or a.status or '—'):<12} {'yes' if a.has_secret else 'no'}")
    print(f"\n  Total: {len(session.accounts)} accounts\n")


def _format_codes(session: CardSession, snapshot: CodeSnapshot) -> str:
    lines = [f"[{snapshot.generated_at:%H:%M:%S}] {seconds_remaining(snapshot.generated_at, TOTP_STEP):>2}s left"]
    for a in session.accounts:
        code = snapshot.codes.get(a.id, "2FA not enabled")
        lines.append(f"  {a.email:<32} {code}")
    return "\n".join(lines)


def cmd_verify(args: argparse.Namespace) -> None:
    """Verify a card code and cache the result."""
    store = SessionStore()
    with VerificationClient() as client:
        session = verify_and_store(client, store, args.card_code)
    print("Card verified.")
    _print_accounts(session)


def cmd_refresh(args: argparse.Namespace) -> None:
    """Re-verify the last used card code to refresh the account list."""
    store = SessionStore()
    card_code = store.last_card_code()
    if not card_code:
        print("No card code cached. Run: otpdesk verify CARD_CODE")
        sys.exit(1)
    with VerificationClient() as client:
        session = verify_and_store(client, store, card_code)
    _print_accounts(session)


def cmd_codes(args: argparse.Namespace) -> None:
    """Show 2FA codes for every cached account."""
    store = SessionStore()
    session = store.load()
    if session is None:
        print("No card session. Run: otpdesk verify CARD_CODE")
        sys.exit(1)

    if args.once:
        import time
        print(_format_codes(session, build_snapshot(session.accounts, time.time())))
        return

    try:
        asyncio.run(_watch_codes(store))
    except KeyboardInterrupt:
        print("\nStopped.")


async def _watch_codes(store: SessionStore) -> None:
    view: AccountCodesView

    def render(snapshot: CodeSnapshot) -> None:
        if view.session is not None:
            print(_format_codes(view.session, snapshot), flush=True)

    view = AccountCodesView(store, on_publish=render)
    view.mount()
    view.show()
    try:
        while view.session is not None:
            await asyncio.sleep(settings.tick_interval)
            store.check_external_change()
        print("Card session was cleared.")
    finally:
        view.unmount()


def cmd_status(args: argparse.Namespace) -> None:
    """Show card expiration status (re-verifying with the server unless --no-verify)."""
    store = SessionStore()
    if args.no_verify:
        result = ExpirationMonitor(store).check(reverify=False)
    else:
        with VerificationClient() as client:
            result = ExpirationMonitor(store, client).check()

    if result.status == ExpirationStatus.NO_CARD:
        print("No card. Run: otpdesk verify CARD_CODE")
    elif result.status == ExpirationStatus.EXPIRED:
        print("Card expired. Session cleared.")
    elif result.status == ExpirationStatus.EXPIRING:
        print(f"Card expiring soon: {result.days_left} day(s) left")
    else:
        print(f"Card valid: {result.days_left} day(s) left")


def cmd_clear(args: argparse.Namespace) -> None:
    """Forget the cached card, accounts and card code."""
    SessionStore().clear()
    print("Card session cleared.")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="otpdesk",
        description="otpdesk — card-verified accounts with live 2FA codes",
    )
    sub = parser.add_subparsers(dest="command", help="Command to run")

    # verify
    p_verify = sub.add_parser("verify", help="Verify a card code")
    p_verify.add_argument("card_code", help=f"{settings.card_code_length}-character card code")

    # refresh
    sub.add_parser("refresh", help="Re-verify the last card code")

    # codes
    p_codes = sub.add_parser("codes", help="Show live 2FA codes")
    p_codes.add_argument("--once", action="store_true", help="Print once and exit")

    # status
    p_status = sub.add_parser("status", help="Card expiration status")
    p_status.add_argument("--no-verify", action="store_true", help="Skip server re-verification")

    # clear
    sub.add_parser("clear", help="Clear the cached session")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    dispatch = {
        "verify": cmd_verify,
        "refresh": cmd_refresh,
        "codes": cmd_codes,
        "status": cmd_status,
        "clear": cmd_clear,
    }
    try:
        dispatch[args.command](args)
    except OtpDeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
