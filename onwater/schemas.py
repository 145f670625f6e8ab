from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-180, le=180)
    lon: float = Field(..., ge=-180, le=180)


class ClassificationResult(BaseModel):
    water: bool
    lat: float
    lon: float
