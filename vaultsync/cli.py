"""
vaultsync CLI — read-only views of a Pleasant Password Server vault.

Usage:
    vaultsync login                     # Check credentials, print nothing secret
    vaultsync root                      # Print the root folder id
    vaultsync tree [FOLDER_ID]          # Print a folder subtree (root by default)
    vaultsync search QUERY              # Full-text search
    vaultsync credential ID             # Show one credential

Connection values come from --config FILE and flags, then PPS_* env vars.
The password is never accepted as a flag.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import httpx

from vaultsync.config import DeclaredConfig, load_declared_config
from vaultsync.errors import VaultSyncError
from vaultsync.models import Folder
from vaultsync.reconciler import CredentialReconciler
from vaultsync.search import SearchProjector
from vaultsync.session import Session, open_session
from vaultsync.tree import TreeMaterializer

logger = logging.getLogger(__name__)

# Test hook — route every HTTP call through this transport when set
_transport: httpx.BaseTransport | None = None


def set_transport(transport: httpx.BaseTransport | None) -> None:
    """Override the HTTP transport (for testing)."""
    global _transport
    _transport = transport


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaultsync",
        description="Inspect and reconcile a Pleasant Password Server vault.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--config", type=Path, help="YAML file with connection settings")
    parser.add_argument("--server-url", help="Vault URL (default: $PPS_SERVER_URL)")
    parser.add_argument("--username", help="Vault user (default: $PPS_USERNAME)")
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=None,
        help="Skip TLS certificate validation for this run",
    )
    parser.add_argument("--otp-code", help="One-time password for MFA logins")
    parser.add_argument("--otp-provider", help="OTP provider name, required with --otp-code")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress to stderr")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("login", help="Authenticate and report the result")
    subparsers.add_parser("root", help="Print the root folder id")

    tree_parser = subparsers.add_parser("tree", help="Print a folder and all its descendants")
    tree_parser.add_argument("folder_id", nargs="?", help="Folder id (default: root)")
    tree_parser.add_argument("--json", action="store_true", help="Emit JSON")

    search_parser = subparsers.add_parser("search", help="Search credentials and folders")
    search_parser.add_argument("query")
    search_parser.add_argument("--json", action="store_true", help="Emit JSON")

    cred_parser = subparsers.add_parser("credential", help="Show one credential")
    cred_parser.add_argument("credential_id")
    cred_parser.add_argument(
        "--show-password", action="store_true", help="Include the secret in the output"
    )
    cred_parser.add_argument("--json", action="store_true", help="Emit JSON")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    if args.version or args.command == "version":
        from vaultsync import __version__

        print(f"vaultsync {__version__}")
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    try:
        session = _open(args)
        if args.command == "login":
            print(f"Authenticated to {session.base_url}")
            return 0
        elif args.command == "root":
            return _cmd_root(session)
        elif args.command == "tree":
            return _cmd_tree(session, args)
        elif args.command == "search":
            return _cmd_search(session, args)
        elif args.command == "credential":
            return _cmd_credential(session, args)
    except VaultSyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


def _declared(args: argparse.Namespace) -> DeclaredConfig:
    base = load_declared_config(args.config) if args.config else DeclaredConfig()
    return DeclaredConfig(
        server_url=args.server_url or base.server_url,
        username=args.username or base.username,
        password=base.password,
        otp_code=args.otp_code or base.otp_code,
        otp_provider=args.otp_provider or base.otp_provider,
        allow_insecure=True if args.insecure else base.allow_insecure,
    )


def _open(args: argparse.Namespace) -> Session:
    return open_session(_declared(args), transport=_transport)


def _cmd_root(session: Session) -> int:
    with session.client(transport=_transport) as client:
        print(TreeMaterializer(client).root_id())
    return 0


def _print_folder(root: Folder) -> None:
    stack = [(root, 0)]
    while stack:
        folder, indent = stack.pop()
        pad = "  " * indent
        tags = f" [{', '.join(t.name for t in folder.tags)}]" if folder.tags else ""
        print(f"{pad}{folder.name}/  ({folder.id}){tags}")
        for cred in folder.credentials:
            user = f" <{cred.username}>" if cred.username else ""
            print(f"{pad}  - {cred.name}{user}  ({cred.id})")
        stack.extend((child, indent + 1) for child in reversed(folder.children))


def _cmd_tree(session: Session, args: argparse.Namespace) -> int:
    with session.client(transport=_transport) as client:
        materializer = TreeMaterializer(client)
        if args.folder_id:
            tree = materializer.materialize(args.folder_id)
        else:
            tree = materializer.materialize_root()

    if args.json:
        print(json.dumps(asdict(tree), indent=2))
    else:
        _print_folder(tree)
    return 0


def _cmd_search(session: Session, args: argparse.Namespace) -> int:
    with session.client(transport=_transport) as client:
        result = SearchProjector(client).search(args.query)

    if args.json:
        print(json.dumps(asdict(result), indent=2))
        return 0

    print(f"Credentials ({len(result.credentials)}):")
    for hit in result.credentials:
        print(f"  {hit.path}/{hit.name}  ({hit.id})")
    print(f"Folders ({len(result.folders)}):")
    for hit in result.folders:
        print(f"  {hit.full_path}  ({hit.id})")
    return 0


def _cmd_credential(session: Session, args: argparse.Namespace) -> int:
    with session.client(transport=_transport) as client:
        cred = CredentialReconciler(client).read(args.credential_id)

    data = asdict(cred)
    if not args.show_password:
        data["password"] = "********" if cred.password else ""

    if args.json:
        print(json.dumps(data, indent=2))
    else:
        for key in ("id", "name", "username", "password", "url", "notes", "folder_id", "expires"):
            print(f"{key:>10}: {data[key] if data[key] is not None else ''}")
        print(f"{'tags':>10}: {', '.join(sorted(cred.tag_names))}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
