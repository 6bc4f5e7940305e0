"""Service and resource schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from shop_reservations.constants import ServiceType, ResourceType
from shop_reservations.schemas.schedule import AvailabilityRuleResponse


class ServiceCreate(BaseModel):
    """Create service request"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    duration_minutes: Optional[int] = Field(None, ge=1, le=480)
    price: Optional[Decimal] = Field(None, ge=0)
    type: ServiceType = ServiceType.SERVICE
    capacity: int = Field(1, ge=1, le=100)
    requires_resource: bool = True
    is_active: bool = True
    sort_order: int = 0


class ServiceUpdate(BaseModel):
    """Update service request"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    duration_minutes: Optional[int] = Field(None, ge=1, le=480)
    price: Optional[Decimal] = Field(None, ge=0)
    type: Optional[ServiceType] = None
    capacity: Optional[int] = Field(None, ge=1, le=100)
    requires_resource: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class ServiceResponse(BaseModel):
    """Service response"""
    id: UUID
    shop_id: UUID
    name: str
    description: Optional[str]
    duration_minutes: Optional[int]
    price: Optional[Decimal]
    type: str
    capacity: Optional[int]
    requires_resource: Optional[bool]
    is_active: Optional[bool]
    sort_order: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ResourceCreate(BaseModel):
    """Create resource request"""
    name: str = Field(..., min_length=1, max_length=255)
    type: ResourceType = ResourceType.STAFF
    image_url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    specialties: List[str] = Field(default_factory=list, max_length=20)
    is_active: bool = True
    sort_order: int = 0


class ResourceUpdate(BaseModel):
    """Update resource request"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[ResourceType] = None
    image_url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    specialties: Optional[List[str]] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class ResourceResponse(BaseModel):
    """Resource response"""
    id: UUID
    shop_id: UUID
    name: str
    type: str
    image_url: Optional[str]
    description: Optional[str]
    specialties: Optional[List[str]]
    is_active: Optional[bool]
    sort_order: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ResourceWithPricing(ResourceResponse):
    """Resource as seen from a service, link overrides flattened in"""
    price_override: Optional[Decimal] = None
    duration_override: Optional[int] = None


class ServiceWithResources(ServiceResponse):
    resources: List[ResourceWithPricing] = []


class ResourceServiceInput(BaseModel):
    service_id: UUID
    price_override: Optional[Decimal] = Field(None, ge=0)
    duration_override: Optional[int] = Field(None, ge=1, le=480)
    is_active: bool = True


class SetResourceServicesRequest(BaseModel):
    """Replace the full set of services a resource provides"""
    services: List[ResourceServiceInput] = Field(..., min_length=1)


class ResourceServiceResponse(BaseModel):
    id: UUID
    resource_id: UUID
    service_id: UUID
    price_override: Optional[Decimal]
    duration_override: Optional[int]
    is_active: Optional[bool]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ResourceWithServices(ResourceResponse):
    services: List[ResourceServiceResponse] = []
    availability: List[AvailabilityRuleResponse] = []


class DeleteResult(BaseModel):
    """Which delete strategy was applied"""
    success: bool = True
    strategy: str  # soft, hard
