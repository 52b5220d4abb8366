"""
EPREL data mapper.

Transforms EPREL API payloads to domain models.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from eprel_proxy.domain.catalog.models import (
    UNKNOWN_TEXT,
    EPRELProduct,
    EPRELProductPage,
    LabelMetrics,
    Smartphone,
)
from eprel_proxy.domain.shared.errors import RecordNormalizationError


def _text(value: Optional[str]) -> str:
    if value is None or not value.strip():
        return UNKNOWN_TEXT
    return value


class EPRELMapper:
    """Maps EPREL API data to domain models."""

    @staticmethod
    def parse_page(payload: Any) -> EPRELProductPage:
        """Parse the product-group listing envelope.

        Args:
            payload: Decoded JSON body

        Returns:
            Validated page

        Raises:
            pydantic.ValidationError: If ``hits`` is missing or not a list

        Example:
            >>> page = EPRELMapper.parse_page(
            ...     {"size": 1, "offset": 0, "hits": [{"modelIdentifier": "M512H"}]}
            ... )
            >>> assert page.hits[0]["modelIdentifier"] == "M512H"
        """
        return EPRELProductPage.model_validate(payload)

    @staticmethod
    def to_metrics(product: EPRELProduct) -> LabelMetrics:
        """Extract label metrics, filling gaps with placeholders.

        Numeric zero is a declared value and is kept.
        """
        return LabelMetrics(
            energy_class=_text(product.energy_class),
            repairability_class=_text(product.repairability_class),
            repairability_index=product.repairability_index,
            battery_endurance_in_cycles=product.battery_endurance_in_cycles,
            battery_endurance_per_cycle=product.battery_endurance_per_cycle,
            ip_rating=_text(product.ingress_protection_rating),
            falls_without_defect=product.falls_without_defect,
            rated_battery_capacity=product.rated_battery_capacity,
            operating_system=_text(product.operating_system),
        )

    @staticmethod
    def to_smartphone(
        product: EPRELProduct,
        normalized_at: Optional[datetime] = None,
    ) -> Smartphone:
        """Convert an EPREL record to a Smartphone.

        Args:
            product: Validated EPREL record
            normalized_at: Timestamp stamped as ``last_updated``
                (defaults to now, UTC)

        Returns:
            Smartphone with every metric filled

        Raises:
            RecordNormalizationError: If the record has no model identifier

        Example:
            >>> product = EPRELProduct(
            ...     model_identifier="M512H",
            ...     supplier_or_trademark="MEIZU",
            ...     device_type="SMARTPHONE",
            ... )
            >>> phone = EPRELMapper.to_smartphone(product)
            >>> assert phone.model_name == "M512H"
            >>> assert phone.metrics.energy_class == UNKNOWN_TEXT
        """
        model_id = product.model_identifier
        if model_id is None or not model_id.strip():
            raise RecordNormalizationError("EPREL record has no modelIdentifier")

        return Smartphone(
            id=model_id,
            brand=_text(product.supplier_or_trademark),
            model_name=model_id,
            device_type=_text(product.device_type),
            eprel_url=product.public_url or None,
            metrics=EPRELMapper.to_metrics(product),
            last_updated=normalized_at or datetime.now(timezone.utc),
        )
