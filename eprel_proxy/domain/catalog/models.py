"""
EPREL catalog domain models.

Two families live here:
- upstream shapes (`EPRELProduct`, `EPRELProductPage`), validated at the
  client boundary before anything else touches them
- the stable internal shapes served to the frontend (`Smartphone` and the
  response envelopes)

JSON keys are camelCase on both sides; Python attributes are snake_case.
"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel

Number = Union[int, float]

# Placeholder for textual label fields EPREL did not provide
UNKNOWN_TEXT = "—"


# ═══════════════════════════════════════════════════════════
# UPSTREAM (EPREL) MODELS
# ═══════════════════════════════════════════════════════════


class EPRELProduct(BaseModel):
    """One hit of the EPREL product-group listing.

    Every field is optional: EPREL omits whatever the supplier did not
    declare. Fields we do not map are kept (``extra="allow"``) but unused.

    Example:
        >>> product = EPRELProduct.model_validate(
        ...     {
        ...         "modelIdentifier": "M512H",
        ...         "supplierOrTrademark": "MEIZU",
        ...         "deviceType": "SMARTPHONE",
        ...         "energyClass": "B",
        ...     }
        ... )
        >>> assert product.model_identifier == "M512H"
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
        extra="allow",
        frozen=True,
    )

    model_identifier: Optional[str] = Field(None, description="Supplier model identifier")
    supplier_or_trademark: Optional[str] = Field(None, description="Supplier name or trademark")
    trademark_owner: Optional[str] = Field(None, description="Trademark owner")
    device_type: Optional[str] = Field(None, description="SMARTPHONE, TABLET, ...")
    energy_class: Optional[str] = Field(None, description="Energy efficiency class (A-G)")
    repairability_class: Optional[str] = Field(None, description="Repairability class (A-E)")
    repairability_index: Optional[Number] = Field(None, description="Repairability index")
    battery_endurance_in_cycles: Optional[Number] = Field(
        None, description="Battery endurance in cycles (x100)"
    )
    battery_endurance_per_cycle: Optional[Number] = Field(
        None, description="Battery endurance per cycle (minutes)"
    )
    ingress_protection_rating: Optional[str] = Field(None, description="IP rating (e.g. IP54)")
    falls_without_defect: Optional[Number] = Field(
        None, description="Repeated free falls without defect"
    )
    rated_battery_capacity: Optional[Number] = Field(
        None, description="Rated battery capacity (mAh)"
    )
    operating_system: Optional[str] = Field(None, description="Operating system")
    public_url: Optional[str] = Field(None, description="Public EPREL label page")

    @field_validator("*", mode="wrap")
    @classmethod
    def invalid_value_is_missing(cls, v: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        """A malformed field (e.g. "n/a" for a number) counts as undeclared."""
        try:
            return handler(v)
        except ValidationError:
            return None

    @field_validator(
        "repairability_index",
        "battery_endurance_in_cycles",
        "battery_endurance_per_cycle",
        "falls_without_defect",
        "rated_battery_capacity",
        mode="before",
    )
    @classmethod
    def blank_number_is_missing(cls, v: Any) -> Any:
        """EPREL sometimes sends "" for undeclared numbers."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(
        "model_identifier",
        "supplier_or_trademark",
        "trademark_owner",
        "device_type",
        mode="before",
    )
    @classmethod
    def number_as_text(cls, v: Any) -> Any:
        """Identifiers sometimes arrive as bare numbers."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class EPRELProductPage(BaseModel):
    """EPREL listing envelope: ``{size, offset, hits}``.

    Hits stay raw here; each one is validated on its own so a single
    malformed record cannot reject the whole listing.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    size: Optional[int] = Field(None, description="Total hits reported by EPREL")
    offset: Optional[int] = Field(None, description="Offset of this page")
    hits: list[Any] = Field(..., description="Raw product records")


# ═══════════════════════════════════════════════════════════
# INTERNAL MODELS
# ═══════════════════════════════════════════════════════════


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
        frozen=True,
    )


class LabelMetrics(_CamelModel):
    """Energy-label metrics, every field filled (value or placeholder)."""

    energy_class: str = UNKNOWN_TEXT
    repairability_class: str = UNKNOWN_TEXT
    repairability_index: Optional[Number] = None
    battery_endurance_in_cycles: Optional[Number] = None
    battery_endurance_per_cycle: Optional[Number] = None
    ip_rating: str = UNKNOWN_TEXT
    falls_without_defect: Optional[Number] = None
    rated_battery_capacity: Optional[Number] = None
    operating_system: str = UNKNOWN_TEXT


class Smartphone(_CamelModel):
    """Stable smartphone shape served to the comparison frontend.

    Example:
        >>> phone = Smartphone(
        ...     id="M512H",
        ...     brand="MEIZU",
        ...     model_name="M512H",
        ...     device_type="SMARTPHONE",
        ...     metrics=LabelMetrics(),
        ...     last_updated=datetime(2024, 1, 1),
        ... )
        >>> assert phone.metrics.ip_rating == UNKNOWN_TEXT
    """

    id: str = Field(..., min_length=1, description="Model identifier")
    brand: str
    model_name: str
    device_type: str
    eprel_url: Optional[str] = None
    metrics: LabelMetrics
    last_updated: datetime = Field(..., description="Normalization time")


class SmartphoneQuery(BaseModel):
    """Typed filter for smartphone listings (validated by the HTTP layer)."""

    model_config = ConfigDict(frozen=True)

    brand: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: int = Field(0, ge=0)


# ═══════════════════════════════════════════════════════════
# RESPONSE ENVELOPES
# ═══════════════════════════════════════════════════════════


class BrandsResponse(_CamelModel):
    brands: list[str]
    total: int
    generated_at: datetime


class Pagination(_CamelModel):
    total: int = Field(..., description="Matches after brand filter")
    count: int = Field(..., description="Items in this page")
    limit: Optional[int] = None
    offset: int = 0


class Filters(_CamelModel):
    brand: Optional[str] = None


class SmartphonesResponse(_CamelModel):
    smartphones: list[Smartphone]
    pagination: Pagination
    filters: Filters
    generated_at: datetime


class SmartphoneResponse(_CamelModel):
    smartphone: Smartphone
    generated_at: datetime


class SearchResponse(_CamelModel):
    results: list[Smartphone]
    query: str
    total: int
    generated_at: datetime


class CacheClearedResponse(_CamelModel):
    message: str
    generated_at: datetime


class CacheStats(_CamelModel):
    entry_count: int
    keys: list[str]
    generated_at: datetime
