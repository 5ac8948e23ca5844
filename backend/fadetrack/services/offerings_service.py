"""
Fadetrack Backend: Offerings Service
====================================

CRUD for the two child record types of a professional profile: offered
services (keyed by profile id) and portfolio items (keyed by the
professional's email).
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fadetrack.exceptions import DatabaseError, NotFoundError, ValidationError
from fadetrack.models.professional import PortfolioItem, ProfessionalProfile, ProfessionalService
from fadetrack.schemas.professional import (
    PortfolioCreate,
    PortfolioResponse,
    PortfolioUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)

logger = logging.getLogger(__name__)


class OfferingsService:

    # ── Services ──────────────────────────────────────────────────────────

    async def list_services(self, db: AsyncSession, professional_id: uuid.UUID) -> List[ServiceResponse]:
        try:
            result = await db.execute(
                select(ProfessionalService)
                .where(ProfessionalService.professional_id == professional_id)
                .order_by(ProfessionalService.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch services: {e}")
        return [ServiceResponse.model_validate(s) for s in result.scalars().all()]

    async def create_service(self, db: AsyncSession, payload: ServiceCreate) -> ServiceResponse:
        if payload.price_max is not None and payload.price_max < payload.price:
            raise ValidationError("price_max must not be lower than price", field="price_max")

        profile = await db.get(ProfessionalProfile, payload.professional_id)
        if profile is None:
            raise NotFoundError(resource="professional profile", resource_id=str(payload.professional_id))

        try:
            service = ProfessionalService(**payload.model_dump(), is_active=True)
            db.add(service)
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to create service: {e}")

        logger.info("Service '%s' added to profile %s", service.name, service.professional_id)
        return ServiceResponse.model_validate(service)

    async def update_service(self, db: AsyncSession, payload: ServiceUpdate) -> ServiceResponse:
        changes = payload.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        service = await db.get(ProfessionalService, payload.id)
        if service is None:
            raise NotFoundError(resource="service", resource_id=str(payload.id))

        for field, value in changes.items():
            setattr(service, field, value)
        if service.price_max is not None and service.price_max < service.price:
            raise ValidationError("price_max must not be lower than price", field="price_max")

        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to update service: {e}")
        return ServiceResponse.model_validate(service)

    async def delete_service(self, db: AsyncSession, service_id: uuid.UUID) -> None:
        service = await db.get(ProfessionalService, service_id)
        if service is None:
            raise NotFoundError(resource="service", resource_id=str(service_id))
        try:
            await db.delete(service)
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to delete service: {e}")
        logger.info("Service %s deleted", service_id)

    # ── Portfolio ─────────────────────────────────────────────────────────

    async def list_portfolio(self, db: AsyncSession, professional_email: str) -> List[PortfolioResponse]:
        try:
            result = await db.execute(
                select(PortfolioItem)
                .where(PortfolioItem.professional_email == professional_email)
                .order_by(PortfolioItem.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to fetch portfolio: {e}")
        return [PortfolioResponse.model_validate(p) for p in result.scalars().all()]

    async def create_portfolio_item(self, db: AsyncSession, payload: PortfolioCreate) -> PortfolioResponse:
        """
        Attach an uploaded image to the professional's portfolio.

        Raises:
            ValidationError: no profile exists for `professional_email`
        """
        result = await db.execute(
            select(ProfessionalProfile.id).where(
                ProfessionalProfile.user_email == payload.professional_email
            )
        )
        profile_id = result.scalar_one_or_none()
        if profile_id is None:
            raise ValidationError(
                "Professional profile not found for email",
                field="professional_email",
            )

        try:
            item = PortfolioItem(
                professional_id=profile_id,
                professional_email=payload.professional_email,
                image_url=payload.image_url,
                caption=payload.caption,
                service_type=payload.service_type or "general",
            )
            db.add(item)
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to create portfolio item: {e}")

        logger.info("Portfolio item %s added for %s", item.id, item.professional_email)
        return PortfolioResponse.model_validate(item)

    async def update_portfolio_item(self, db: AsyncSession, payload: PortfolioUpdate) -> PortfolioResponse:
        changes = payload.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        item = await db.get(PortfolioItem, payload.id)
        if item is None:
            raise NotFoundError(resource="portfolio item", resource_id=str(payload.id))

        for field, value in changes.items():
            setattr(item, field, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to update portfolio item: {e}")
        return PortfolioResponse.model_validate(item)

    async def delete_portfolio_item(self, db: AsyncSession, item_id: uuid.UUID) -> None:
        item = await db.get(PortfolioItem, item_id)
        if item is None:
            raise NotFoundError(resource="portfolio item", resource_id=str(item_id))
        try:
            await db.delete(item)
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(message=f"Failed to delete portfolio item: {e}")
        logger.info("Portfolio item %s deleted", item_id)


offerings_service = OfferingsService()
