from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Authenticated caller resolved from the bearer token."""

    id: UUID
    tenant_id: UUID
    role: str
