"""
Command-line entry point: ``python -m gym_kernel <command>``.

Commands:
    init-db           create tables
    check             print the execution mode and verify the audit chain
    reconcile         run the compensating pass
    expire            mark contracts past their end date as finished
    cancel-contract   cancel a contract (cascade)
    delete-client     delete a client (cascade; --force for dependents)
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from gym_kernel.bootstrap import bootstrap
from gym_kernel.config import load_settings
from gym_kernel.domain.dtos import ServiceResult
from gym_kernel.exceptions import GymKernelError


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gym_kernel",
        description="Gym records consistency kernel.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, help="YAML settings file.")
    parser.add_argument("--database-url", help="Override the configured database URL.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables.")
    sub.add_parser("check", help="Show execution mode and verify the audit chain.")
    sub.add_parser("reconcile", help="Repair drift left by interrupted sequential runs.")
    sub.add_parser("expire", help="Finish contracts whose end date has passed.")

    cancel = sub.add_parser("cancel-contract", help="Cancel a contract.")
    cancel.add_argument("contract_id")
    cancel.add_argument("--reason", default="")

    delete = sub.add_parser("delete-client", help="Delete a client.")
    delete.add_argument("client_id")
    delete.add_argument("--force", action="store_true", help="Cascade to plans and contracts.")
    delete.add_argument("--reason", default="")

    return parser.parse_args(argv)


def _print_result(result: ServiceResult) -> int:
    payload = {"success": result.success, "message": result.message, **result.data}
    if result.error_code:
        payload["error_code"] = result.error_code
    print(json.dumps(payload, default=str, indent=2))
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings(args.config)
    if args.database_url:
        settings = replace(settings, database_url=args.database_url)

    try:
        kernel = bootstrap(settings)
    except GymKernelError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.command == "init-db":
        print("tables created")
        return 0

    if args.command == "check":
        with kernel.coordinator.read() as uow:
            chain_ok = uow.audit.validate_chain()
        print(json.dumps({"mode": kernel.coordinator.mode.value, "audit_chain_valid": chain_ok}))
        return 0 if chain_ok else 1

    if args.command == "reconcile":
        try:
            report = kernel.reconciliation.reconcile()
        except GymKernelError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        print(
            json.dumps(
                {
                    "associations_created": len(report.associations_created),
                    "orphan_entries_deleted": len(report.orphan_entries_deleted),
                    "failed_items": len(report.errors),
                }
            )
        )
        return 0 if report.success else 1

    if args.command == "expire":
        return _print_result(kernel.contracts.expire_contracts())

    try:
        if args.command == "cancel-contract":
            return _print_result(kernel.contracts.cancel_contract(args.contract_id, args.reason))
        if args.command == "delete-client":
            return _print_result(
                kernel.clients.delete_client(args.client_id, force=args.force, reason=args.reason)
            )
    except GymKernelError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 1
