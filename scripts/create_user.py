"""
Create an account from the command line (e.g. the first admin). Run from project root:
  python -m scripts.create_user --email EMAIL --username USERNAME --password PASSWORD [--full-name NAME] [--role ROLE ...]
Example:
  python -m scripts.create_user --email admin@example.com --username admin --password 'S3cure!pass' --role Admin --role User
"""
import argparse
import sys

from marshmallow import ValidationError

from models.base_model import utcnow
from models.schemas.common import flatten_errors
from models.schemas.user import RegisterSchema
from models.user import DEFAULT_ROLE, User
from utils.security import CredentialHasher


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create an account without going through /auth/register.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--username", required=True, help="Letters, numbers, underscores and hyphens (3-100 chars)")
    parser.add_argument("--password", required=True, help="8-100 chars with upper, lower, digit and special")
    parser.add_argument("--full-name", dest="full_name", default=None)
    parser.add_argument("--role", dest="roles", action="append", default=None,
                        help=f"Role label; repeat for several (default: {DEFAULT_ROLE})")
    return parser


def main(argv=None, storage=None, hasher=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        data = RegisterSchema().load(
            {
                "email": args.email,
                "username": args.username,
                "password": args.password,
                "full_name": args.full_name,
            }
        )
    except ValidationError as err:
        for message in flatten_errors(err.messages):
            print(message, file=sys.stderr)
        return 1

    if storage is None:
        from models import storage
    hasher = hasher or CredentialHasher()

    try:
        if storage.account_exists(data["email"], data["username"]):
            print(f"User '{data['username']}' or '{data['email']}' already exists.", file=sys.stderr)
            return 1
        now = utcnow()
        user = User(
            email=data["email"],
            username=data["username"],
            password_hash=hasher.hash(data["password"]),
            full_name=data.get("full_name"),
            roles=args.roles or [DEFAULT_ROLE],
            created_at=now,
            updated_at=now,
        )
        with storage.transaction():
            storage.add_account(user)
        print(f"Created user '{user.username}' ({user.id}) with roles {', '.join(user.roles)}.")
        return 0
    finally:
        storage.close()


if __name__ == "__main__":
    sys.exit(main())
