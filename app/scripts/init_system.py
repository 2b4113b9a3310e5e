"""
Provision the first school and its SuperAdmin

Run once against a fresh database, after the Alembic migrations:

    python -m app.scripts.init_system --code FROEBEL_ABJ --name "Institut Froebel" \
        --school-email contact@froebel.ci --admin-email admin@froebel.ci \
        --first-name Admin --last-name Froebel

The admin password is read from the INIT_ADMIN_PASSWORD environment variable.
"""

import argparse
import os
import sys

from sqlmodel import Session
import structlog

from app.core.database import engine
from app.schemas.common import ApiResponse
from app.schemas.school import SchoolCreate
from app.schemas.token import InitializeSystemRequest
from app.schemas.user import AccountProfile
from app.services.auth_service import AuthService

logger = structlog.get_logger(__name__)


def build_request(args: argparse.Namespace, password: str) -> InitializeSystemRequest:
    return InitializeSystemRequest(
        school=SchoolCreate(
            name=args.name,
            code=args.code,
            email=args.school_email,
            commune=args.commune,
            address=args.address,
            phone=args.phone,
        ),
        super_admin=AccountProfile(
            email=args.admin_email,
            password=password,
            confirm_password=password,
            first_name=args.first_name,
            last_name=args.last_name,
        ),
    )


def initialize(session: Session, request: InitializeSystemRequest) -> ApiResponse:
    result = AuthService(session).initialize_system(request)
    if result.success:
        logger.info(f"Provisioned school {result.data.school.code} with SuperAdmin {result.data.account.email}")
    else:
        logger.error(f"Provisioning failed: {result.message} {result.errors}")
    return result


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the first school and its SuperAdmin")
    parser.add_argument("--code", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--school-email", required=True)
    parser.add_argument("--commune", default="")
    parser.add_argument("--address", default="")
    parser.add_argument("--phone", default="")
    parser.add_argument("--admin-email", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for provisioning"""
    args = parse_args(argv)
    password = os.environ.get("INIT_ADMIN_PASSWORD")
    if not password:
        logger.error("INIT_ADMIN_PASSWORD is not set")
        sys.exit(2)

    with Session(engine) as session:
        result = initialize(session, build_request(args, password))

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
