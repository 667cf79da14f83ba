from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.database import get_db


# Type alias for cleaner endpoint signatures
DB = Annotated[AsyncSession, Depends(get_db)]
