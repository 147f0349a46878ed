#!/usr/bin/env python3
"""
Inventory ledger management CLI.

Usage:
    python manage.py start       Migrate the database, then start the server
    python manage.py stop        Graceful shutdown
    python manage.py restart     Stop + start
    python manage.py status      Check if the server is running
    python manage.py migrate     Apply migrations (--status / --verify to inspect)
"""

import argparse
import asyncio
import os
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent
APP_PATH = "inventory_ledger.api.main:app"


class ServerProcess:
    """A background uvicorn process tracked through a pid file."""

    def __init__(self, pid_file: Path):
        self.pid_file = pid_file

    @staticmethod
    def alive(pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except OSError:
            return False
        return True

    def pid(self) -> int | None:
        """Pid of the running server; a stale pid file is removed."""
        try:
            pid = int(self.pid_file.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None
        if self.alive(pid):
            return pid
        self.pid_file.unlink(missing_ok=True)
        return None

    def spawn(self, command: list[str]) -> int:
        proc = subprocess.Popen(command, cwd=str(ROOT_DIR))
        self.pid_file.write_text(str(proc.pid))
        return proc.pid

    def terminate(self, pid: int, grace: float = 5.0) -> bool:
        """SIGTERM, then SIGKILL after ``grace`` seconds. True once gone."""
        for sig, wait in ((signal.SIGTERM, grace), (signal.SIGKILL, 0.5)):
            try:
                os.kill(pid, sig)
            except ProcessLookupError:
                break
            deadline = time.monotonic() + wait
            while time.monotonic() < deadline and self.alive(pid):
                time.sleep(0.1)
            if not self.alive(pid):
                break
        self.pid_file.unlink(missing_ok=True)
        return not self.alive(pid)


server = ServerProcess(ROOT_DIR / ".inventory_ledger.pid")


def port_in_use(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("127.0.0.1" if host == "0.0.0.0" else host, port))
        except OSError:
            return True
    return False


def migrate(db_path: Path | None = None, backup: bool | None = None) -> bool:
    """Apply pending migrations and print the outcome; True if all succeeded."""
    from inventory_ledger.infrastructure.storage.sqlite.migrations.migrator import (
        initialize_database,
        print_results,
    )

    results = asyncio.run(initialize_database(db_path, create_backup_before=backup))
    print_results(results)
    return all(r.success for r in results)


def cmd_migrate(args: argparse.Namespace) -> None:
    from inventory_ledger.infrastructure.storage.sqlite.migrations.migrator import (
        get_migration_status,
        print_checks,
        verify_schema_integrity,
    )

    if args.status:
        status = asyncio.run(get_migration_status(args.db_path))
        print(f"Database exists: {status['exists']}")
        print(f"Current version: {status['current_version'] or 'N/A'}")
        print(f"Pending migrations: {status['pending_migrations']}")
    elif args.verify:
        if not print_checks(asyncio.run(verify_schema_integrity(args.db_path))):
            sys.exit(1)
    elif not migrate(args.db_path, backup=False if args.no_backup else None):
        sys.exit(1)


def cmd_start(args: argparse.Namespace) -> None:
    running = server.pid()
    if running is not None:
        sys.exit(f"Server already running (PID {running}). Use 'restart' or 'stop' first.")
    if port_in_use(args.port, args.host):
        sys.exit(f"Error: port {args.port} is in use.")
    if not args.skip_migrate and not migrate():
        sys.exit("Error: migrations failed; server not started.")

    command = [
        sys.executable, "-m", "uvicorn", APP_PATH,
        "--host", args.host,
        "--port", str(args.port),
    ]
    if args.workers > 1:
        # Ingredient locks do not span processes; write transactions and the
        # ledger line index keep each receipt line exactly-once.
        print(f"Note: {args.workers} workers share the database but not ingredient locks.")
        command += ["--workers", str(args.workers)]

    pid = server.spawn(command)
    print(f"Server started on {args.host}:{args.port} (PID {pid}).")
    print(f"  Health: http://{args.host}:{args.port}/api/health/db")


def cmd_stop(args: argparse.Namespace) -> None:
    pid = server.pid()
    if pid is None:
        print("Server is not running.")
        return
    print(f"Stopping server (PID {pid})...")
    print("Server stopped." if server.terminate(pid) else "Warning: server may still be running.")


def cmd_restart(args: argparse.Namespace) -> None:
    cmd_stop(args)
    cmd_start(args)


def cmd_status(args: argparse.Namespace) -> None:
    pid = server.pid()
    if pid is not None:
        print(f"Server is running (PID {pid}).")
    elif port_in_use(args.port):
        print(f"No PID file, but port {args.port} is in use by another process.")
    else:
        print("Server is not running.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inventory ledger management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, func, help_text in (
        ("start", cmd_start, "Migrate and start the server"),
        ("restart", cmd_restart, "Restart the server"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--host", default="0.0.0.0")
        p.add_argument("--port", type=int, default=8000)
        p.add_argument("--workers", type=int, default=1, help="uvicorn worker processes")
        p.add_argument("--skip-migrate", action="store_true", help="Do not migrate first")
        p.set_defaults(func=func)

    sub.add_parser("stop", help="Stop the server").set_defaults(func=cmd_stop)

    p = sub.add_parser("status", help="Check if the server is running")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("migrate", help="Apply database migrations")
    p.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--status", action="store_true", help="Show migration status")
    mode.add_argument("--verify", action="store_true", help="Verify schema and ledger balance")
    p.add_argument("--no-backup", action="store_true", help="Skip the backup copy")
    p.set_defaults(func=cmd_migrate)

    return parser


def main() -> None:
    args = build_parser().parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
