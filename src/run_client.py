#!/usr/bin/env python3
"""
Command line stand-in for the mobile app's auth screens.

Restores the stored session, then runs one command against it.

Usage:
    python run_client.py status
    python run_client.py login --id-token <google id token>
    python run_client.py login --access-token <google access token>
    python run_client.py whoami
    python run_client.py logout
"""
import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from client import AuthRejectedError, InvalidInputError, ServerError
from client.config import ClientSettings, build_credential_store, build_identity_client
from schema import ProviderCredentialKind, VerificationStatus
from session import Session, SessionManager

load_dotenv()


def describe(session: Session) -> str:
    if session.user is None:
        return f"[SESSION] {session.state.value}"
    flags = []
    if session.user.is_rider:
        flags.append("rider")
    if session.user.is_passenger:
        flags.append("passenger")
    refreshing = " (verifying...)" if session.is_refreshing else ""
    return f"[SESSION] {session.state.value}{refreshing}: {session.user.name} <{session.user.email}> [{', '.join(flags)}]"


async def run(args: argparse.Namespace) -> int:
    settings = ClientSettings.from_env()
    if args.base_url:
        settings.api_base_url = args.base_url

    manager = SessionManager(build_credential_store(settings), build_identity_client(settings))
    if args.verbose:
        manager.subscribe(lambda session: print(describe(session)))

    try:
        await manager.initialize()
        await manager.wait_until_restored()

        if args.command == "status":
            print(describe(manager.session))

        elif args.command == "login":
            kind = ProviderCredentialKind.ACCESS_TOKEN if args.access_token else ProviderCredentialKind.ID_TOKEN
            try:
                user = await manager.login(args.access_token or args.id_token or "", kind)
            except (InvalidInputError, AuthRejectedError, ServerError) as e:
                print(f"[ERROR] Login failed: {e}")
                return 1
            print(f"[LOGIN] Signed in as {user.name} <{user.email}>")

        elif args.command == "whoami":
            result = await manager.refresh()
            if result is None:
                print("[SESSION] Not signed in")
                return 1
            if result.status == VerificationStatus.INDETERMINATE:
                print(f"[WARN] Could not reach the server ({result.error}), showing cached user")
            print(describe(manager.session))
            return 0 if manager.is_authenticated else 1

        elif args.command == "logout":
            await manager.logout()
            print("[LOGOUT] Signed out")

        return 0
    finally:
        await manager.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Rideshare session client")
    parser.add_argument("--base-url", default=None, help="Backend base URL (default: RIDESHARE_API_BASE_URL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every session transition")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show the restored session without contacting the server")

    login_parser = subparsers.add_parser("login", help="Sign in with a Google credential")
    credential = login_parser.add_mutually_exclusive_group(required=True)
    credential.add_argument("--id-token", help="Google ID token")
    credential.add_argument("--access-token", help="Google OAuth access token")

    subparsers.add_parser("whoami", help="Verify the session with the server")
    subparsers.add_parser("logout", help="Sign out and forget stored credentials")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
