#!/usr/bin/env python
"""
Command-line front end for the upload pipeline.

Usage:
    agri-upload validate farmers.csv --schema farmer --show-invalid
    agri-upload submit parcels.zip --schema land_parcel_boundary
    agri-upload login --email user@example.org
    agri-upload logout

Environment variables (or a .env file) configure the endpoints; see
agri_upload.models.config.UploadSettings.
"""

import argparse
import getpass
import logging
import sys
from typing import List, Optional

from agri_upload.auth import AuthSession, FileTokenStorage, MemoryTokenStorage
from agri_upload.errors import UploadError
from agri_upload.models import UploadSettings, get_settings
from agri_upload.schemas import SCHEMAS, get_schema
from agri_upload.submission import SubmissionClient
from agri_upload.workflow import UploadWorkflow

log = logging.getLogger(__name__)


def _session(settings: UploadSettings) -> AuthSession:
    storage = (
        FileTokenStorage(settings.auth_token_path)
        if settings.auth_token_path
        else MemoryTokenStorage()
    )
    return AuthSession(
        login_url=settings.auth_login_url,
        storage=storage,
        timeout=settings.timeout_seconds,
    )


def _print_summary(workflow: UploadWorkflow, show_invalid: bool) -> None:
    valid, invalid = len(workflow.valid), len(workflow.invalid)
    print(f"Validation complete: {valid} valid, {invalid} invalid")
    if workflow.dropped_columns:
        print(f"Ignored columns: {', '.join(workflow.dropped_columns)}")
    if show_invalid:
        for index, record in enumerate(workflow.invalid):
            print(f"  [{index}] {' • '.join(record.violations)}")
            for name in workflow.schema.field_names:
                print(f"      {name}: {record.get(name)!r}")


def _read(args: argparse.Namespace, client: Optional[SubmissionClient] = None) -> UploadWorkflow:
    workflow = UploadWorkflow(get_schema(args.schema), client)
    workflow.select_path(args.file)
    workflow.read_file()
    _print_summary(workflow, args.show_invalid)
    return workflow


def cmd_validate(args: argparse.Namespace) -> int:
    workflow = _read(args)
    return 0 if not workflow.invalid else 2


def cmd_submit(args: argparse.Namespace) -> int:
    settings = get_settings()
    session = _session(settings)
    token = session.token if session.is_authenticated() else None

    with SubmissionClient(settings, token=token) as client:
        workflow = _read(args, client)
        result = workflow.send()

    if result is None:
        print("Nothing to upload: no valid records")
        return 0
    print(f"Uploaded successfully. Inserted: {result.inserted}")
    if result.failed:
        print(f"Server rejected: {result.failed}")
    return 0


def cmd_login(args: argparse.Namespace) -> int:
    session = _session(get_settings())
    password = args.password or getpass.getpass("Password: ")
    user = session.login(args.email, password)
    print(f"Logged in as {user.email}")
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    _session(get_settings()).logout()
    print("Logged out")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agri-upload",
        description="Validate farmer and land-parcel files and upload the valid rows",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, handler, help_text in (
        ("validate", cmd_validate, "Read and validate a file"),
        ("submit", cmd_submit, "Validate a file and upload its valid rows"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("file", help="File to read")
        sub.add_argument(
            "--schema",
            required=True,
            choices=sorted(SCHEMAS),
            help="Schema the file follows",
        )
        sub.add_argument(
            "--show-invalid",
            action="store_true",
            help="Print every invalid row with its violations",
        )
        sub.set_defaults(handler=handler)

    login = subparsers.add_parser("login", help="Log in and store the session token")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="Password (prompted when omitted)")
    login.set_defaults(handler=cmd_login)

    logout = subparsers.add_parser("logout", help="Forget the stored session token")
    logout.set_defaults(handler=cmd_logout)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.handler(args)
    except (UploadError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
