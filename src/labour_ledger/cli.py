"""Labour ledger command line interface.

Provides operational tools for:
- Schema creation
- Batch recalculation (repair) of labour ledgers
- Consistency verification
- Balance queries
- Serving the HTTP API

Usage:
    labour-ledger init-db
    labour-ledger recalculate [--labour-id X ...] [--dry-run]
    labour-ledger verify [--labour-id X ...]
    labour-ledger balance --labour-id X
    labour-ledger serve
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, ContextManager
from uuid import UUID

import uvicorn
from sqlalchemy.orm import Session, sessionmaker

from labour_ledger.config import configure_logging, get_settings
from labour_ledger.database import get_session, init_db
from labour_ledger.facade import LabourLedger


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class LedgerCli:
    """Labour ledger command line interface."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="labour-ledger",
            description="Labour ledger operational tools",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            help="Logging level (default: LOG_LEVEL from the environment)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        subparsers.add_parser(
            "init-db",
            help="Create the ledger tables",
        )

        # recalculate command
        recalculate = subparsers.add_parser(
            "recalculate",
            help="Rebuild ledgers from opening balances",
        )
        recalculate.add_argument(
            "--labour-id",
            type=parse_uuid,
            action="append",
            dest="labour_ids",
            help="Labour to recalculate (repeatable; default: all labours)",
        )
        recalculate.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing",
        )

        # verify command
        verify = subparsers.add_parser(
            "verify",
            help="Check stored balances against a replay",
        )
        verify.add_argument(
            "--labour-id",
            type=parse_uuid,
            action="append",
            dest="labour_ids",
            help="Labour to verify (repeatable; default: all labours)",
        )

        # balance command
        balance = subparsers.add_parser(
            "balance",
            help="Show a labour's current balance",
        )
        balance.add_argument(
            "--labour-id",
            type=parse_uuid,
            required=True,
            help="Labour to query",
        )

        # serve command
        subparsers.add_parser(
            "serve",
            help="Run the HTTP API",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level)

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "init-db": self._cmd_init_db,
            "recalculate": self._cmd_recalculate,
            "verify": self._cmd_verify,
            "balance": self._cmd_balance,
            "serve": self._cmd_serve,
        }

        handler = handlers.get(parsed.command)
        if handler:
            return handler(parsed)

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _session(self) -> ContextManager[Session]:
        """Session from the injected factory, or the configured database."""
        if self.session_factory is not None:
            return self.session_factory()
        return get_session()

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create tables on the configured database."""
        init_db(create_tables=True)
        print("Database initialized.")
        return 0

    def _cmd_recalculate(self, args: argparse.Namespace) -> int:
        """Rebuild ledgers and print a per-labour summary."""
        with self._session() as session:
            report = LabourLedger(session).recalculate(args.labour_ids, dry_run=args.dry_run)

        header = "Recalculation (dry run)" if report.dry_run else "Recalculation"
        print(header)
        print("=" * 60)
        for outcome in report.labours:
            if outcome.error:
                print(f"  {outcome.labour_id}  FAILED: {outcome.error}")
                continue
            marker = "*" if outcome.mirror_changed or outcome.entries_corrected else " "
            print(
                f"{marker} {outcome.labour_id}  events={outcome.event_count}"
                f"  corrected={outcome.entries_corrected}"
                f"  balance {outcome.previous_balance} -> {outcome.new_balance}"
            )
        print("=" * 60)
        print(
            f"Labours: {report.labours_processed}  "
            f"Entries corrected: {report.entries_corrected}  "
            f"Failures: {len(report.failures)}"
        )
        return 0 if report.ok else 1

    def _cmd_verify(self, args: argparse.Namespace) -> int:
        """Report discrepancies; non-zero exit when any are found."""
        with self._session() as session:
            report = LabourLedger(session).verify(args.labour_ids)

        if report is None:
            print("ERROR: labour not found", file=sys.stderr)
            return 1

        for discrepancy in report.discrepancies:
            print(f"  - {discrepancy.describe()}")
        if report.consistent:
            print(f"Verified {report.labours_checked} labour(s): consistent")
            return 0
        print(
            f"Verified {report.labours_checked} labour(s): "
            f"{len(report.discrepancies)} discrepancy(ies)"
        )
        print("Run 'labour-ledger recalculate' to repair.")
        return 1

    def _cmd_balance(self, args: argparse.Namespace) -> int:
        """Print the mirror balance of one labour."""
        with self._session() as session:
            ledger = LabourLedger(session)
            labour = ledger.get_labour(args.labour_id)
            if labour is None:
                print(f"ERROR: labour {args.labour_id} not found", file=sys.stderr)
                return 1
            print(f"Balance for labour: {labour.full_name} ({labour.labour_id})")
            print(f"  Opening: {labour.opening_balance:>15,.2f}")
            print(f"  Current: {labour.balance:>15,.2f}")
        return 0

    def _cmd_serve(self, args: argparse.Namespace) -> int:
        """Run the API under uvicorn."""
        settings = get_settings()
        uvicorn.run(
            "labour_ledger.api.app:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=settings.DEBUG,
        )
        return 0


def main() -> int:
    """CLI entry point."""
    cli = LedgerCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
