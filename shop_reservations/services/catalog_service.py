"""Services, resources and the links between them"""

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from shop_reservations.errors import NotFoundError, ValidationError, translate_store_errors
from shop_reservations.models.catalog import ReservationService, ReservationResource, ResourceServiceLink
from shop_reservations.models.reservation import Reservation
from shop_reservations.models.schedule import AvailabilityRule, ReservationBlock
from shop_reservations.schemas.catalog import (
    ServiceCreate,
    ServiceUpdate,
    ServiceWithResources,
    ServiceResponse,
    ResourceCreate,
    ResourceUpdate,
    ResourceResponse,
    ResourceWithPricing,
    ResourceWithServices,
    ResourceServiceInput,
    ResourceServiceResponse,
)
from shop_reservations.schemas.schedule import AvailabilityRuleResponse

logger = structlog.get_logger()


class CatalogService:
    """CRUD for the bookable catalog of a shop"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============================================
    # Services
    # ============================================

    @translate_store_errors
    async def create_service(self, shop_id: UUID, data: ServiceCreate) -> ReservationService:
        service = ReservationService(shop_id=shop_id, **data.model_dump(mode="json", exclude={"price"}))
        service.price = data.price
        self.db.add(service)
        await self.db.commit()
        await self.db.refresh(service)

        logger.info("Service created", shop_id=str(shop_id), service_id=str(service.id))
        return service

    @translate_store_errors
    async def update_service(
        self, service_id: UUID, shop_id: UUID, data: ServiceUpdate
    ) -> ReservationService:
        result = await self.db.execute(
            select(ReservationService).where(
                ReservationService.id == service_id,
                ReservationService.shop_id == shop_id,
            )
        )
        service = result.scalar_one_or_none()

        if not service:
            raise NotFoundError("Service not found")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(service, field, value.value if hasattr(value, "value") else value)

        await self.db.commit()
        await self.db.refresh(service)
        return service

    @translate_store_errors
    async def get_service(self, service_id: UUID, shop_id: Optional[UUID] = None) -> ServiceWithResources:
        """Service with its linked resources, link overrides flattened in"""
        query = (
            select(ReservationService)
            .where(ReservationService.id == service_id)
            .options(
                selectinload(ReservationService.resource_links).selectinload(ResourceServiceLink.resource)
            )
            .execution_options(populate_existing=True)
        )
        if shop_id:
            query = query.where(ReservationService.shop_id == shop_id)

        result = await self.db.execute(query)
        service = result.scalar_one_or_none()

        if not service:
            raise NotFoundError("Service not found")

        resources = [
            ResourceWithPricing(
                **ResourceResponse.model_validate(link.resource).model_dump(),
                price_override=link.price_override,
                duration_override=link.duration_override,
            )
            for link in service.resource_links
        ]
        return ServiceWithResources(
            **ServiceResponse.model_validate(service).model_dump(),
            resources=resources,
        )

    @translate_store_errors
    async def list_services(self, shop_id: UUID, active_only: bool = False) -> List[ReservationService]:
        query = (
            select(ReservationService)
            .where(ReservationService.shop_id == shop_id)
            .order_by(ReservationService.sort_order, ReservationService.name)
        )
        if active_only:
            query = query.where(ReservationService.is_active == True)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    @translate_store_errors
    async def delete_service(self, service_id: UUID, shop_id: UUID) -> str:
        """Deactivate when reservations reference the service, otherwise remove it"""
        await self._ensure_owned(ReservationService, service_id, shop_id, "Service not found")

        referenced = await self._has_reservations(Reservation.service_id == service_id)
        if referenced:
            await self.db.execute(
                update(ReservationService)
                .where(ReservationService.id == service_id, ReservationService.shop_id == shop_id)
                .values(is_active=False)
            )
            strategy = "soft"
        else:
            await self.db.execute(delete(ResourceServiceLink).where(ResourceServiceLink.service_id == service_id))
            await self.db.execute(
                delete(ReservationService).where(
                    ReservationService.id == service_id,
                    ReservationService.shop_id == shop_id,
                )
            )
            strategy = "hard"

        await self.db.commit()
        logger.info("Service deleted", shop_id=str(shop_id), service_id=str(service_id), strategy=strategy)
        return strategy

    # ============================================
    # Resources
    # ============================================

    @translate_store_errors
    async def create_resource(self, shop_id: UUID, data: ResourceCreate) -> ReservationResource:
        resource = ReservationResource(shop_id=shop_id, **data.model_dump(mode="json"))
        self.db.add(resource)
        await self.db.commit()
        await self.db.refresh(resource)

        logger.info("Resource created", shop_id=str(shop_id), resource_id=str(resource.id))
        return resource

    @translate_store_errors
    async def update_resource(
        self, resource_id: UUID, shop_id: UUID, data: ResourceUpdate
    ) -> ReservationResource:
        result = await self.db.execute(
            select(ReservationResource).where(
                ReservationResource.id == resource_id,
                ReservationResource.shop_id == shop_id,
            )
        )
        resource = result.scalar_one_or_none()

        if not resource:
            raise NotFoundError("Resource not found")

        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            setattr(resource, field, value)

        await self.db.commit()
        await self.db.refresh(resource)
        return resource

    @translate_store_errors
    async def get_resource(self, resource_id: UUID, shop_id: Optional[UUID] = None) -> ResourceWithServices:
        """Resource with its service links and weekly availability"""
        query = (
            select(ReservationResource)
            .where(ReservationResource.id == resource_id)
            .options(
                selectinload(ReservationResource.service_links),
                selectinload(ReservationResource.availability),
            )
            .execution_options(populate_existing=True)
        )
        if shop_id:
            query = query.where(ReservationResource.shop_id == shop_id)

        result = await self.db.execute(query)
        resource = result.scalar_one_or_none()

        if not resource:
            raise NotFoundError("Resource not found")

        rules = sorted(resource.availability, key=lambda r: (r.day_of_week, r.start_time))
        return ResourceWithServices(
            **ResourceResponse.model_validate(resource).model_dump(),
            services=[ResourceServiceResponse.model_validate(link) for link in resource.service_links],
            availability=[AvailabilityRuleResponse.model_validate(rule) for rule in rules],
        )

    @translate_store_errors
    async def list_resources(
        self,
        shop_id: UUID,
        active_only: bool = False,
        type: Optional[str] = None,
        service_id: Optional[UUID] = None,
    ) -> List[ReservationResource]:
        query = (
            select(ReservationResource)
            .where(ReservationResource.shop_id == shop_id)
            .order_by(ReservationResource.sort_order, ReservationResource.name)
        )
        if active_only:
            query = query.where(ReservationResource.is_active == True)
        if type:
            query = query.where(ReservationResource.type == type)
        if service_id:
            query = query.where(
                ReservationResource.id.in_(
                    select(ResourceServiceLink.resource_id).where(
                        ResourceServiceLink.service_id == service_id,
                        ResourceServiceLink.is_active == True,
                    )
                )
            )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    @translate_store_errors
    async def delete_resource(self, resource_id: UUID, shop_id: UUID) -> str:
        """Deactivate when reservations reference the resource, otherwise remove it"""
        await self._ensure_owned(ReservationResource, resource_id, shop_id, "Resource not found")

        referenced = await self._has_reservations(Reservation.resource_id == resource_id)
        if referenced:
            await self.db.execute(
                update(ReservationResource)
                .where(ReservationResource.id == resource_id, ReservationResource.shop_id == shop_id)
                .values(is_active=False)
            )
            strategy = "soft"
        else:
            # Dependent rows go first
            await self.db.execute(delete(ResourceServiceLink).where(ResourceServiceLink.resource_id == resource_id))
            await self.db.execute(delete(AvailabilityRule).where(AvailabilityRule.resource_id == resource_id))
            await self.db.execute(delete(ReservationBlock).where(ReservationBlock.resource_id == resource_id))
            await self.db.execute(
                delete(ReservationResource).where(
                    ReservationResource.id == resource_id,
                    ReservationResource.shop_id == shop_id,
                )
            )
            strategy = "hard"

        await self.db.commit()
        logger.info("Resource deleted", shop_id=str(shop_id), resource_id=str(resource_id), strategy=strategy)
        return strategy

    # ============================================
    # Resource-Service Links
    # ============================================

    @translate_store_errors
    async def set_resource_services(
        self,
        resource_id: UUID,
        shop_id: UUID,
        services: Sequence[ResourceServiceInput],
    ) -> List[ResourceServiceLink]:
        """Replace every link of the resource with ``services``"""
        if not services:
            raise ValidationError("At least one service is required")

        await self._ensure_owned(ReservationResource, resource_id, shop_id, "Resource not found")

        service_ids = {s.service_id for s in services}
        result = await self.db.execute(
            select(ReservationService.id).where(
                ReservationService.id.in_(service_ids),
                ReservationService.shop_id == shop_id,
            )
        )
        if set(result.scalars().all()) != service_ids:
            raise NotFoundError("Service not found")

        await self.db.execute(delete(ResourceServiceLink).where(ResourceServiceLink.resource_id == resource_id))

        links = [
            ResourceServiceLink(
                resource_id=resource_id,
                service_id=s.service_id,
                price_override=s.price_override,
                duration_override=s.duration_override,
                is_active=s.is_active,
            )
            for s in services
        ]
        self.db.add_all(links)
        await self.db.commit()

        logger.info("Resource services replaced", resource_id=str(resource_id), link_count=len(links))
        return links

    @translate_store_errors
    async def get_resource_services(self, resource_id: UUID) -> List[ResourceServiceLink]:
        """Active links of a resource, service loaded"""
        result = await self.db.execute(
            select(ResourceServiceLink)
            .where(ResourceServiceLink.resource_id == resource_id, ResourceServiceLink.is_active == True)
            .options(selectinload(ResourceServiceLink.service))
        )
        return list(result.scalars().all())

    @translate_store_errors
    async def get_service_resources(self, service_id: UUID) -> List[ResourceServiceLink]:
        """Active links of a service, resource loaded"""
        result = await self.db.execute(
            select(ResourceServiceLink)
            .where(ResourceServiceLink.service_id == service_id, ResourceServiceLink.is_active == True)
            .options(selectinload(ResourceServiceLink.resource))
        )
        return list(result.scalars().all())

    # ============================================
    # Helpers
    # ============================================

    async def _ensure_owned(self, model, entity_id: UUID, shop_id: UUID, message: str) -> None:
        result = await self.db.execute(
            select(model.id).where(model.id == entity_id, model.shop_id == shop_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(message)

    async def _has_reservations(self, condition) -> bool:
        result = await self.db.execute(select(Reservation.id).where(condition).limit(1))
        return result.first() is not None
