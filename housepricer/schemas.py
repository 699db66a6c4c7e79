from pydantic import BaseModel, Field

from .engine import PropertyAttributes

class PropertyAttributesIn(BaseModel):
    # Ranges are checked by the engine so failures carry its error names
    city: str
    area: float = 1000
    bedrooms: int = 2
    bathrooms: int = 2
    location_rating: float = 5
    school_proximity: float = 2
    market_proximity: float = 1.5
    amenities: dict[str, bool] = Field(default_factory=dict)

    def to_attributes(self) -> PropertyAttributes:
        return PropertyAttributes(**self.model_dump())

class BatchValuationRequest(BaseModel):
    properties: list[PropertyAttributesIn] = Field(min_length=1, max_length=100)

class BreakdownItem(BaseModel):
    factor: str
    amount: float

class ValuationResponse(BaseModel):
    city: str
    currency: str = "USD"
    price: float = Field(ge=0)
    base_rate: float
    breakdown: list[BreakdownItem]
    cached: bool = False
    etag: str | None = None

class BatchItem(BaseModel):
    index: int
    ok: bool
    valuation: ValuationResponse | None = None
    error: dict | None = None

class SavedPropertyOut(BaseModel):
    id: str
    seq: int
    price: float
    city: str
    area: float
    bedrooms: int
    bathrooms: int
    location_rating: float
    school_proximity: float
    market_proximity: float
    amenities: dict[str, bool]

class ComparisonRow(SavedPropertyOut):
    price_per_area: float

class ComparisonResponse(BaseModel):
    count: int
    min_price: float | None
    max_price: float | None
    mean_price: float | None
    cheapest_id: str | None
    priciest_id: str | None
    properties: list[ComparisonRow]

class RevalueResponse(BaseModel):
    id: str
    saved_price: float
    current_price: float
    drift: float

class CityOut(BaseModel):
    name: str
    base_rate: float

class AmenityOut(BaseModel):
    name: str
    increment: float

class HistoryPoint(BaseModel):
    month: str
    index: float
    price: float

class SimilarProperty(BaseModel):
    id: str
    price: float
    similarity: float = Field(ge=0, le=1)
    city: str
    area: float
    bedrooms: int
    bathrooms: int
    location_rating: float
    school_proximity: float
    market_proximity: float
    amenities: dict[str, bool]
