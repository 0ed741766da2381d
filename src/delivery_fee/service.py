# src/delivery_fee/service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from .domain import (
    DeliveryRequest,
    FeeQuote,
    FeeResult,
    Forbidden,
    InternalFailure,
    utcnow,
)
from .resolver import ContextResolver
from .rules.fee_engine import calculate_fee
from .rules.validation import validate_context, validate_request

logger = logging.getLogger(__name__)


class DeliveryFeeService:
    """
    Quotes delivery fees:
      request checks -> context resolution -> context checks -> calculation.

    Expected outcomes come back as values (FeeQuote, BadRequest, NotFound,
    Forbidden). Unexpected errors are logged under a correlation id and
    returned as InternalFailure.
    """

    def __init__(self, resolver: ContextResolver, *, clock: Callable[[], datetime] = utcnow):
        self.resolver = resolver
        self._clock = clock

    async def get_delivery_fee(
        self,
        city: Optional[str],
        vehicle_type: Optional[str],
        requested_at: Optional[datetime] = None,
    ) -> FeeResult:
        request = DeliveryRequest.create(city, vehicle_type, requested_at)

        bad_request = validate_request(request, self._clock())
        if bad_request is not None:
            logger.info("Rejected fee request %s: %s", request, bad_request.message)
            return bad_request

        try:
            context = await self.resolver.resolve(request)

            not_found = validate_context(context, request)
            if not_found is not None:
                logger.info("Fee request %s: %s", request, not_found.message)
                return not_found

            amount = calculate_fee(context, request.vehicle_type)
        except Exception:
            correlation_id = uuid4().hex
            logger.exception("Delivery fee calculation failed [correlation_id=%s]", correlation_id)
            return InternalFailure(correlation_id=correlation_id)

        if isinstance(amount, Forbidden):
            return amount
        return FeeQuote(
            amount=amount,
            city=request.city,
            vehicle_type=request.vehicle_type,
            observed_at=context.observation.observed_at if context.observation else None,
        )
