"""
statusnet CLI — run services, provision accounts, inspect records.

Usage:
    python -m statusnet serve records            # Record store (34568)
    python -m statusnet serve auth               # Credential service (34570)
    python -m statusnet serve user               # Session coordinator (34572)
    python -m statusnet serve push               # Fan-out notifier (34574)
    python -m statusnet provision alice pw1 US alice
    python -m statusnet show profiles US alice
    python -m statusnet keygen                   # Print the token verify key
"""
import argparse
import json
import sys
from typing import List, Optional

from .config import get_db_path, get_records_url, get_signing_key_path
from .errors import StatusNetError
from .friends import Location
from .observability import configure_logging

SERVICES = ("records", "auth", "user", "push")


def _records(remote: bool):
    if remote:
        from .clients import RecordStoreClient
        return RecordStoreClient(get_records_url())
    from .store import RecordStore
    return RecordStore(get_db_path())


def cmd_serve(args) -> int:
    import uvicorn

    if args.service == "records":
        from .record_server import create_app
        from .config import RECORDS_PORT as port
    elif args.service == "auth":
        from .auth_server import create_app
        from .config import AUTH_PORT as port
    elif args.service == "user":
        from .user_server import create_app
        from .config import USER_PORT as port
    else:
        from .push_server import create_app
        from .config import PUSH_PORT as port

    uvicorn.run(create_app(), host=args.host, port=args.port or port)
    return 0


def cmd_provision(args) -> int:
    from .credentials import CredentialService
    from .tokens import TokenSigner, load_or_create_signing_key

    signer = TokenSigner(load_or_create_signing_key(get_signing_key_path()))
    service = CredentialService(records=_records(args.remote), signer=signer)
    profile = {"friends": args.friends} if args.friends is not None else None
    service.provision(args.user_id, args.secret, Location(args.partition, args.row), profile=profile)
    print(f"Provisioned {args.user_id} -> {args.partition}/{args.row}")
    return 0


def cmd_show(args) -> int:
    record = _records(args.remote).read_entity(args.table, args.partition, args.row)
    print(json.dumps(record, indent=2, sort_keys=True))
    return 0


def cmd_keygen(args) -> int:
    from .tokens import TokenSigner, load_or_create_signing_key

    path = get_signing_key_path()
    signer = TokenSigner(load_or_create_signing_key(path))
    print(f"Signing key: {path}")
    print(f"STATUSNET_VERIFY_KEY={signer.verify_key_hex}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="statusnet", description="statusnet services and admin tools")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run one of the services")
    serve.add_argument("service", choices=SERVICES)
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None, help="Override the service's default port")
    serve.set_defaults(func=cmd_serve)

    provision = sub.add_parser("provision", help="Create a credential record and profile")
    provision.add_argument("user_id")
    provision.add_argument("secret")
    provision.add_argument("partition")
    provision.add_argument("row")
    provision.add_argument("--friends", default=None, help='Encoded friend list, e.g. "CA;bob|US;carol"')
    provision.add_argument("--remote", action="store_true", help="Write through the record server")
    provision.set_defaults(func=cmd_provision)

    show = sub.add_parser("show", help="Print one record")
    show.add_argument("table")
    show.add_argument("partition")
    show.add_argument("row")
    show.add_argument("--remote", action="store_true", help="Read through the record server")
    show.set_defaults(func=cmd_show)

    keygen = sub.add_parser("keygen", help="Create the signing key if missing and print its verify key")
    keygen.set_defaults(func=cmd_keygen)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except StatusNetError as exc:
        print(f"Error ({exc.status_code}): {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
