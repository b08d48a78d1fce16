from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class Sector(str, Enum):
    IT = "IT"
    FINANCE = "Finance"
    HEALTHCARE = "Healthcare"
    MANUFACTURING = "Manufacturing"
    RETAIL = "Retail"
    OTHER = "Other"


# Sort order for results and tie-break order for the classifier.
SECTOR_PRIORITY = [
    Sector.IT,
    Sector.FINANCE,
    Sector.HEALTHCARE,
    Sector.MANUFACTURING,
    Sector.RETAIL,
    Sector.OTHER,
]

EMPLOYEE_BANDS = ("1-10", "11-50", "50+")


class Location(BaseModel):
    city: str = ""
    street: str = ""
    postal_code: str = Field(default="", alias="postalCode")

    class Config:
        frozen = True
        populate_by_name = True


class Contact(BaseModel):
    email: str = ""
    phone: str = ""
    website: str = ""

    class Config:
        frozen = True


class Entity(BaseModel):
    """Canonical business record returned to callers."""
    id: str
    name: str = Field(min_length=1)
    registry_id: str = Field(default="", alias="registryId")
    location: Location = Field(default_factory=Location)
    employee_count_band: str = Field(default="", alias="employeeCountBand")
    sector: Sector = Sector.OTHER
    contact: Contact = Field(default_factory=Contact)
    social_links: Dict[str, str] = Field(default_factory=dict, alias="socialLinks")

    class Config:
        frozen = True
        populate_by_name = True

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Query(BaseModel):
    keyword: Optional[str] = None
    location: Optional[str] = None
    sector: Optional[Sector] = None
    employee_count_band: Optional[str] = Field(default=None, alias="employeeCountBand")

    class Config:
        populate_by_name = True

    @field_validator("keyword", "location", "employee_count_band", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("sector", mode="before")
    @classmethod
    def _blank_sector(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def band_filter(self) -> Optional[str]:
        band = self.employee_count_band
        if not band or band.lower() == "all":
            return None
        return band


class SearchResult(BaseModel):
    data: List[Entity] = Field(default_factory=list)
    error: Optional[str] = None

    def to_json(self) -> dict:
        payload = {"data": [entity.to_json() for entity in self.data]}
        if self.error:
            payload["error"] = self.error
        return payload
