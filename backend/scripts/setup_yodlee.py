#!/usr/bin/env python
"""Yodlee client credential setup script.

Validates Yodlee client credentials by requesting an access token for the
admin login name, then offers to store them in the system keychain.

Usage:
    1. Copy the client id, secret and admin login name from the Yodlee
       developer portal (API Dashboard > API Keys)
    2. Run ``python -m scripts.setup_yodlee`` and enter them when prompted
    3. Or pass ``--clear`` to remove stored credentials from the keychain
"""

import argparse
import getpass
import sys

from integrations.exceptions import ProviderError
from integrations.yodlee_client import YodleeClient
from services.credential_manager import delete_credential, set_credential


def validate_credentials(client_id: str, secret: str, admin_login_name: str) -> float:
    """Request an access token with the given credentials.

    Returns:
        Lifetime of the issued token in seconds.

    Raises:
        ProviderError: If Yodlee rejects the credentials or is unreachable.
    """
    client = YodleeClient(
        client_id=client_id, secret=secret, admin_login_name=admin_login_name
    )
    try:
        _, expires_in = client.generate_access_token(admin_login_name)
    finally:
        client.close()
    return expires_in


def store_credentials(credentials: dict[str, str]) -> int:
    """Write credentials to the keychain, printing each outcome.

    Returns:
        Number of credentials stored.
    """
    stored = 0
    for key, value in credentials.items():
        if set_credential(key, value):
            print(f"  Stored {key} in keychain")
            stored += 1
        else:
            print(f"  Failed to store {key}")
    return stored


def clear_credentials() -> None:
    for key in ("YODLEE_CLIENT_ID", "YODLEE_SECRET", "YODLEE_ADMIN_LOGIN_NAME"):
        if delete_credential(key):
            print(f"  Removed {key}")
        else:
            print(f"  {key} was not stored")


def main(argv: list[str] | None = None, input_fn=input, secret_fn=getpass.getpass) -> int:
    parser = argparse.ArgumentParser(description="Validate and store Yodlee credentials")
    parser.add_argument("--clear", action="store_true", help="Remove stored credentials")
    args = parser.parse_args(argv)

    if args.clear:
        clear_credentials()
        return 0

    print("Yodlee Credential Setup")
    print("=" * 50)
    client_id = input_fn("Client ID: ").strip()
    secret = secret_fn("Secret: ").strip()
    admin_login_name = input_fn("Admin login name: ").strip()
    if not client_id or not secret:
        print("Error: client ID and secret are required")
        return 1

    print("\nRequesting an access token...")
    try:
        expires_in = validate_credentials(client_id, secret, admin_login_name)
    except ProviderError as e:
        print(f"✗ Validation failed: {e}")
        return 1
    print(f"✓ Credentials valid (token lifetime {int(expires_in)}s)")

    answer = input_fn("\nStore these credentials in the keychain? [Y/n] ").strip().lower()
    if answer not in ("", "y", "yes"):
        print("  Skipped keychain storage.")
        return 0

    credentials = {"YODLEE_CLIENT_ID": client_id, "YODLEE_SECRET": secret}
    if admin_login_name:
        credentials["YODLEE_ADMIN_LOGIN_NAME"] = admin_login_name
    return 0 if store_credentials(credentials) == len(credentials) else 1


if __name__ == "__main__":
    sys.exit(main())
