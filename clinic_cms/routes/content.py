"""
Routes for the globally ordered site content: promotions, services,
specialists and the history timeline.
"""
from clinic_cms.models import Promotion, Service, Specialist, TimelineEntry
from clinic_cms.routes.resource_router import build_resource_router
from clinic_cms.schemas import (
    PromotionCreate,
    PromotionResponse,
    PromotionUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    SpecialistCreate,
    SpecialistResponse,
    SpecialistUpdate,
    TimelineCreate,
    TimelineResponse,
    TimelineUpdate,
)
from clinic_cms.services.attachments import AttachmentManager
from clinic_cms.services.resources import OrderedResource

promotions = OrderedResource(
    Promotion, "Promotion", attachments=AttachmentManager("image"), image_required=True
)
services = OrderedResource(Service, "Service", attachments=AttachmentManager("image"))
specialists = OrderedResource(Specialist, "Specialist", attachments=AttachmentManager("image"))
timeline = OrderedResource(TimelineEntry, "Timeline item", attachments=AttachmentManager("image"))

promotions_router = build_resource_router(
    promotions,
    prefix="/promotions",
    tag="promotions",
    create_schema=PromotionCreate,
    update_schema=PromotionUpdate,
    response_schema=PromotionResponse,
)

services_router = build_resource_router(
    services,
    prefix="/services",
    tag="services",
    create_schema=ServiceCreate,
    update_schema=ServiceUpdate,
    response_schema=ServiceResponse,
)

specialists_router = build_resource_router(
    specialists,
    prefix="/specialists",
    tag="specialists",
    create_schema=SpecialistCreate,
    update_schema=SpecialistUpdate,
    response_schema=SpecialistResponse,
)

# The public site calls the timeline "history"
history_router = build_resource_router(
    timeline,
    prefix="/history",
    tag="history",
    create_schema=TimelineCreate,
    update_schema=TimelineUpdate,
    response_schema=TimelineResponse,
)

routers = [promotions_router, services_router, specialists_router, history_router]
