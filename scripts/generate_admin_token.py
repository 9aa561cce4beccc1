#!/usr/bin/env python3
"""
Generate an admin JWT token for local development
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.auth.utils import create_admin_token


def main():
    """Generate and print admin token"""
    token = create_admin_token(user_id=1, username="admin", expires_minutes=24 * 60)
    print("=" * 80)
    print("ADMIN JWT TOKEN (for local development)")
    print("=" * 80)
    print(token)
    print("=" * 80)
    print("\nUse this token in API requests:")
    print(f"   Authorization: Bearer {token}")
    print("\nExample curl commands:")
    print(f'   curl -H "Authorization: Bearer {token}" \\')
    print('     http://localhost:8000/api/v1/admin/deposits?status=awaiting_confirmation')
    print("\n   # Approve a deposit:")
    print(f'   curl -H "Authorization: Bearer {token}" \\')
    print('     -H "Content-Type: application/json" \\')
    print('     -X PATCH http://localhost:8000/api/v1/admin/deposits/1 \\')
    print('     -d \'{"status": "approved"}\'')
    print("\n   # Pay out matured investments:")
    print(f'   curl -H "Authorization: Bearer {token}" \\')
    print('     -X POST http://localhost:8000/api/v1/admin/investments/mature')
    print("=" * 80)
    return token


if __name__ == "__main__":
    main()
