"""
Pydantic schemas for request/response validation.
"""
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic.alias_generators import to_camel

from phonecatalog.filters import FilterCriteria, MAX_PAGE_SIZE


T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(CamelModel):
    """Body of POST /api/devices/search."""

    filters: FilterCriteria = Field(default_factory=FilterCriteria)
    sort_by: Optional[str] = Field(None, description="Column to sort by, e.g. 'ps.ram_gb'")
    sort_order: str = Field("asc", description="'asc' or 'desc'")
    page: StrictInt = Field(1, ge=1, description="Page number, starting at 1")
    limit: StrictInt = Field(20, ge=1, le=MAX_PAGE_SIZE, description="Results per page")

    @field_validator("filters", mode="before")
    @classmethod
    def default_filters(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("sort_order", mode="before")
    @classmethod
    def validate_sort_order(cls, v: Any) -> str:
        """Only asc/desc, case-insensitive."""
        if v is None:
            return "asc"
        if not isinstance(v, str) or v.strip().lower() not in ("asc", "desc"):
            raise ValueError('Sort order must be either "asc" or "desc"')
        return v.strip().lower()

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "filters": {"brand": "Samsung", "ramGb": 8, "priceRange": {"min": 500, "max": 1200}},
                "sortBy": "pr.price_unofficial",
                "sortOrder": "asc",
                "page": 1,
                "limit": 20,
            }
        },
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Sorting(CamelModel):
    sort_by: str
    sort_order: str


class PriceRange(CamelModel):
    min: float = 0
    max: float = 0


class DeviceList(CamelModel):
    devices: List[Dict[str, Any]]
    pagination: Pagination


class SearchResults(CamelModel):
    phones: List[Dict[str, Any]]
    pagination: Pagination
    filters: Dict[str, Any]
    sorting: Sorting


class FilterOptions(CamelModel):
    """Dropdown options; only values referenced by at least one phone."""

    brands: List[Dict[str, Any]] = Field(default_factory=list)
    chipsets: List[Dict[str, Any]] = Field(default_factory=list)
    display_types: List[Dict[str, Any]] = Field(default_factory=list)
    storage_options: List[Union[int, float]] = Field(default_factory=list)
    price_range: PriceRange = Field(default_factory=PriceRange)


class PhoneDetails(CamelModel):
    phone: Dict[str, Any]


class APIResponse(CamelModel, Generic[T]):
    """
    Success envelope.

    sql_query and execution_time describe the primary query behind the
    response, for the SQL visualizer.
    """

    success: bool = True
    data: T
    sql_query: str = Field(..., description="SQL text of the primary query")
    execution_time: float = Field(..., description="Execution time of the primary query in ms")


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error code, e.g. NOT_FOUND")
    message: str
    status: int
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error response schema."""

    success: bool = False
    error: ErrorDetail

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": {
                    "code": "NOT_FOUND",
                    "message": "Phone with ID 999999 not found",
                    "status": 404,
                },
            }
        }
    )
