"""
Create tables and seed accounts manually.
Usage:
  python -m app.manage_db init
  python -m app.manage_db create-user admin@example.com secret admin --name Admin
  python -m app.manage_db purge-sessions
"""
import argparse
import sys

from Security.session_store import SqlSessionStore

from .auth import create_user
from .database import Base, SessionLocal, engine
from .models import ROLES


def main(argv=None):
    parser = argparse.ArgumentParser(prog="manage_db")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="create missing tables")
    user = sub.add_parser("create-user", help="create an account")
    user.add_argument("email")
    user.add_argument("password")
    user.add_argument("role", choices=ROLES)
    user.add_argument("--name", default="")
    user.add_argument("--status", choices=("approved", "pending", "rejected"))
    sub.add_parser("purge-sessions", help="delete expired sessions")
    args = parser.parse_args(argv)

    print("Creating tables (if missing)...")
    Base.metadata.create_all(bind=engine)

    if args.command == "create-user":
        db = SessionLocal()
        try:
            created = create_user(db, args.email, args.password, args.role, args.name or args.email, args.status)
        finally:
            db.close()
        print(f"Created {created.role} id={created.id} status={created.status}")
    elif args.command == "purge-sessions":
        removed = SqlSessionStore(SessionLocal).purge_expired()
        print(f"Removed {removed} expired sessions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
