"""Print a long-lived bearer token for an existing account.

Usage:
    python create_token.py admin@zencare.example [--days 365]

The token is signed with ``SECRET_KEY`` from the environment, so run
this with the same configuration as the API.
"""
import argparse

from zencare_api.app.core.security import create_access_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Mint a ZenCare API access token.")
    ap.add_argument("email", help="Email of the account the token is issued for")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days (default 365)")
    args = ap.parse_args()
    token = create_access_token({"sub": args.email.strip().lower()}, expires_delta=args.days * 24 * 60 * 60)
    print(token)


if __name__ == "__main__":
    main()
