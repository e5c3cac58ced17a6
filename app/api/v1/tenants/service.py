import logging

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.enums import UserRole
from app.core.exceptions import ServiceError
from app.core.models import Tenant
from app.core.tenant_scope import TenantScope
from app.core.tenant_service import generate_organization_code

from .schemas import TenantRegisterRequest, TenantRegisterResponse, TenantResponse

logger = logging.getLogger(__name__)


async def register_tenant(db: AsyncSession, payload: TenantRegisterRequest) -> TenantRegisterResponse:
    """Create the hostel organization and its first ADMIN user in one transaction."""
    existing = await db.execute(
        select(User.id).where(func.lower(User.email) == payload.admin_email.lower())
    )
    if existing.scalar_one_or_none() is not None:
        raise ServiceError("Email is already in use", status.HTTP_409_CONFLICT)

    try:
        # organization_code is always generated, never accepted from the client
        organization_code = await generate_organization_code(db)
        tenant = Tenant(
            organization_code=organization_code,
            organization_name=payload.organization_name.strip(),
            contact_email=payload.contact_email or payload.admin_email,
            address=payload.address,
            status="ACTIVE",
        )
        db.add(tenant)
        await db.flush()  # to populate tenant.id

        admin = User(
            tenant_id=tenant.id,
            full_name=payload.admin_full_name.strip(),
            email=payload.admin_email.lower(),
            mobile=payload.admin_mobile,
            password_hash=hash_password(payload.password),
            role=UserRole.ADMIN.value,
            status="ACTIVE",
        )
        db.add(admin)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Conflict while creating tenant or user", status.HTTP_409_CONFLICT) from e

    logger.info("Tenant registered: %s (%s)", tenant.organization_code, tenant.id)
    return TenantRegisterResponse(
        tenant_id=tenant.id,
        organization_code=tenant.organization_code,
        admin_user_id=admin.id,
    )


async def get_tenant(scope: TenantScope) -> TenantResponse:
    tenant = await scope.db.get(Tenant, scope.tenant_id)
    if not tenant:
        raise ServiceError("Organization not found", status.HTTP_404_NOT_FOUND)
    return TenantResponse.model_validate(tenant)
