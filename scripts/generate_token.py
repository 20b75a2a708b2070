#!/usr/bin/env python3
"""Generate a bearer token for local testing of the attendance API"""
import sys
import os
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.auth.jwt_handler import create_access_token


def generate_token(user_id: str, email: str = None, role: str = "caang", hours: int = 12):
    data = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "role": role,
    }
    return create_access_token(data, expires_delta=timedelta(hours=hours))


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate a test JWT")
    parser.add_argument("--user-id", required=True, help="User ID")
    parser.add_argument("--email", help="User email")
    parser.add_argument("--role", default="caang", choices=["caang", "member", "admin"], help="User role")
    parser.add_argument("--hours", type=int, default=12, help="Token lifetime in hours")

    args = parser.parse_args()

    token = generate_token(args.user_id, args.email, args.role, args.hours)
    print(token)
    print()
    print("curl example:")
    print(
        f'curl -X POST -H "Authorization: Bearer {token}" -H "Content-Type: application/json" '
        f'-d \'{{"userId": "{args.user_id}", "activityId": "<activity-id>"}}\' '
        f'http://localhost:8000/api/v1/attendance/qr/sign'
    )
