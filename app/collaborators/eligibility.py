"""Chef eligibility collaborator"""

from abc import ABC, abstractmethod
from uuid import UUID

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.kitchen import Kitchen
from app.models.tenant import KitchenAccessGrant

logger = structlog.get_logger()


class EligibilityService(ABC):
    """Answers whether a chef has been approved to book a kitchen"""

    @abstractmethod
    async def is_eligible_to_book(self, chef_id: UUID, kitchen_id: UUID) -> bool:
        pass


class AccessGrantEligibility(EligibilityService):
    """Reads access grants recorded by the approval workflow"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_eligible_to_book(self, chef_id: UUID, kitchen_id: UUID) -> bool:
        result = await self.db.execute(
            select(KitchenAccessGrant.id)
            .join(Kitchen, Kitchen.tenant_id == KitchenAccessGrant.tenant_id)
            .where(
                Kitchen.id == kitchen_id,
                KitchenAccessGrant.chef_id == chef_id,
            )
        )
        return result.first() is not None


class HttpEligibilityService(EligibilityService):
    """Asks a remote approval service; any failure counts as not eligible"""

    def __init__(self, base_url: str, timeout: float = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    async def is_eligible_to_book(self, chef_id: UUID, kitchen_id: UUID) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/eligibility",
                    params={"chef_id": str(chef_id), "kitchen_id": str(kitchen_id)},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Eligibility check failed",
                chef_id=str(chef_id),
                kitchen_id=str(kitchen_id),
                error=str(e),
            )
            return False

        return bool(data.get("eligible", False))
