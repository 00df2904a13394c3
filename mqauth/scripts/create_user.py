"""
Create a broker user (e.g. first admin) in the configured store. Run from project root:
  python -m mqauth.scripts.create_user USERNAME PASSWORD [--admin] [--topic PATTERN:RIGHTS ...]
RIGHTS is any of "pub", "sub" or "pubsub". Example:
  python -m mqauth.scripts.create_user admin your-secure-password --admin --topic '#:pubsub'
"""
import argparse
import logging
import sys

from mqauth.core.config import get_settings
from mqauth.core.exceptions import AuthStoreError
from mqauth.core.logging_config import configure_logging
from mqauth.schemas.users import Topic, User
from mqauth.store import new_store

logger = logging.getLogger(__name__)


def parse_topic(value: str) -> Topic:
    """Parse PATTERN:RIGHTS, e.g. 'sensors/+/temp:pub'."""
    pattern, sep, rights = value.rpartition(":")
    if not sep or not pattern:
        raise argparse.ArgumentTypeError(f"expected PATTERN:RIGHTS, got {value!r}")
    if rights not in ("pub", "sub", "pubsub"):
        raise argparse.ArgumentTypeError("RIGHTS must be pub, sub or pubsub")
    return Topic(
        pattern=pattern,
        can_publish="pub" in rights,
        can_subscribe="sub" in rights,
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a broker user in the configured store.")
    parser.add_argument("username", help="Username (non-blank)")
    parser.add_argument("password", help="Password (non-blank)")
    parser.add_argument("--admin", action="store_true", help="Grant the admin flag")
    parser.add_argument(
        "--topic",
        action="append",
        type=parse_topic,
        default=[],
        metavar="PATTERN:RIGHTS",
        help="Topic grant to add; may be repeated",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)

    username = args.username.strip()
    store = new_store(settings)
    try:
        store.load()
        store.add_user(User(username=username, password=args.password, admin=args.admin))
        for topic in args.topic:
            store.add_topic_to_user(username, topic)
    except AuthStoreError as e:
        print(f"Could not create user '{username}': {e.message}", file=sys.stderr)
        return 1
    print(
        f"Created user '{username}' (admin={args.admin}) with {len(args.topic)} topic grant(s) "
        f"in {settings.STORAGE_TYPE} storage."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
