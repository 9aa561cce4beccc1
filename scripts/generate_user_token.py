#!/usr/bin/env python3
"""
Generate a JWT token with the user role for a wallet owner
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.auth.utils import create_user_token


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--user-id", type=int, default=2, help="Wallet owner id")
    parser.add_argument("--username", default="user")
    parser.add_argument("--expires-minutes", type=int, default=24 * 60)
    args = parser.parse_args()

    token = create_user_token(user_id=args.user_id, username=args.username, expires_minutes=args.expires_minutes)

    print("=" * 60)
    print(f"USER JWT TOKEN (user_id={args.user_id})")
    print("=" * 60)
    print()
    print(token)
    print()
    print("Usage Examples:")
    print()
    print("curl http://localhost:8000/api/v1/user/wallet \\")
    print("  -H 'Authorization: Bearer " + token + "'")
    print()
    print("curl -X POST http://localhost:8000/api/v1/trade/buy \\")
    print("  -H 'Authorization: Bearer " + token + "' \\")
    print("  -H 'Content-Type: application/json' \\")
    print("  -d '{\"asset_type\": \"stock\", \"symbol\": \"AAPL\", \"asset_name\": \"Apple Inc.\", "
          "\"quantity\": \"2\", \"price\": \"189.45\"}'")
    return token


if __name__ == "__main__":
    main()
