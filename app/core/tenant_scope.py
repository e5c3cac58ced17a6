"""
Tenant scope: a session bound to one tenant.

Services never build a tenant-owned query from a bare select(); they ask the
scope, which always adds the tenant_id filter. Forgetting the filter is then a
type error at the call site, not a silent cross-tenant read.
"""
from typing import Any, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import Select, Update, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

M = TypeVar("M")


class TenantScope:
    def __init__(self, db: AsyncSession, tenant_id: UUID) -> None:
        self.db = db
        self.tenant_id = tenant_id

    def select(self, model: Type[M], *columns: Any) -> Select:
        """select(model) or select(*columns) filtered to this tenant."""
        stmt = select(*columns) if columns else select(model)
        return stmt.where(model.tenant_id == self.tenant_id)

    def count(self, model: Type[M]) -> Select:
        return select(func.count(model.id)).where(model.tenant_id == self.tenant_id)

    def update(self, model: Type[M]) -> Update:
        return update(model).where(model.tenant_id == self.tenant_id)

    async def get(self, model: Type[M], obj_id: Any, *, for_update: bool = False) -> Optional[M]:
        stmt = self.select(model).where(model.id == obj_id)
        if for_update:
            # Locked reads also refresh any copy already in the session
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def add(self, obj: Any) -> Any:
        obj.tenant_id = self.tenant_id
        self.db.add(obj)
        return obj
