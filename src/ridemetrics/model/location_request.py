from pydantic import BaseModel, Field

from .route_geometry import Coordinate


class LocationRequest(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def to_domain(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_domain(cls, coordinate: Coordinate) -> "LocationRequest":
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)
