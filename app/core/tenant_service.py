"""
Tenant service: organization_code generation.

- organization_code is a human-readable public identifier (e.g. HST-A3K9).
- tenant_id (UUID) remains the only primary key and FK target.
"""
import secrets

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.core.models import Tenant

ORGANIZATION_CODE_PREFIX = "HST"
# Excludes ambiguous 0/O, 1/I
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_organization_code_candidate() -> str:
    """Single candidate code (no DB check): HST-XXXX."""
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(4))
    return f"{ORGANIZATION_CODE_PREFIX}-{suffix}"


async def generate_organization_code(db: AsyncSession, max_attempts: int = 20) -> str:
    """Unique organization_code; retries with a new suffix on collision."""
    for _ in range(max_attempts):
        code = generate_organization_code_candidate()
        result = await db.execute(select(Tenant.id).where(Tenant.organization_code == code))
        if result.scalar_one_or_none() is None:
            return code
    raise ServiceError(
        "Could not generate unique organization code",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
