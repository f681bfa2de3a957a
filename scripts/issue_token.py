#!/usr/bin/env python3
"""Issue a bearer token for a user id.

Usage:
    python scripts/issue_token.py USER_ID [--admin] [--minutes N]
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from docexpress.services.auth_service import ROLE_ADMIN, ROLE_USER, AuthService


def main():
    parser = argparse.ArgumentParser(description="Issue an access token")
    parser.add_argument("user_id", help="Owner id placed in the token's sub claim")
    parser.add_argument("--admin", action="store_true", help="Grant the admin role")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes")
    args = parser.parse_args()

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    role = ROLE_ADMIN if args.admin else ROLE_USER
    print(AuthService.create_access_token(args.user_id, role=role, expires_delta=expires))


if __name__ == "__main__":
    main()
