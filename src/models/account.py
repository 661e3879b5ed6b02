"""Account data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Account(BaseModel):
    """A user account linked to an OAuth provider identity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    thumbnail: Optional[str] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
