from __future__ import annotations
from typing import Dict, List, Optional, Tuple, Union
from pydantic import BaseModel, Field, ConfigDict


# --------- Common ---------
class ErrorDetail(BaseModel):
    field: Optional[str] = None
    issue: Optional[str] = None


class ErrorEnvelope(BaseModel):
    code: str = Field(default="SERVER_ERROR")
    message: str
    details: Optional[List[ErrorDetail]] = None


class ErrorResponse(BaseModel):
    error: ErrorEnvelope


# --------- Inputs ---------
class ChartRequestIn(BaseModel):
    """Birth details for one chart. Explicit coordinates win over the place text."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "date": "1991-07-14",
                "time": "22:35",
                "place": "Mumbai, IN",
                "latitude": 19.0760,
                "longitude": 72.8777,
                "houseSystem": "P"
            }
        ]
    })

    date: str = Field(..., description="Local birth date in ISO format YYYY-MM-DD.", examples=["1991-07-14"])
    time: str = Field(..., description="Local birth time in 24h format HH:MM or HH:MM:SS.", examples=["22:35"])
    place: Optional[str] = Field(default=None, description="Place name to geocode when coordinates are not given.", examples=["Mumbai, IN"])
    latitude: Optional[float] = Field(default=None, ge=-90, le=90, description="Latitude in decimal degrees (north positive).", examples=[19.0760])
    longitude: Optional[float] = Field(default=None, ge=-180, le=180, description="Longitude in decimal degrees (east positive).", examples=[72.8777])
    houseSystem: Optional[str] = Field(default=None, min_length=1, max_length=1, description="Swiss Ephemeris house system code ('P' Placidus, 'K' Koch, 'E' Equal, ...).", examples=["P"])


class SynastryIn(BaseModel):
    """Two charts and an optional override of the cross-chart point pairs."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "personA": {"date": "1991-07-14", "time": "22:35", "latitude": 19.0760, "longitude": 72.8777},
                "personB": {"date": "1993-02-20", "time": "06:10", "place": "Delhi, IN"}
            }
        ]
    })

    personA: ChartRequestIn = Field(..., description="First person")
    personB: ChartRequestIn = Field(..., description="Second person")
    pairs: Optional[List[Tuple[str, str]]] = Field(default=None, description="Point pairs (personA point, personB point). Defaults to the focus list.")


class HarmonicIn(BaseModel):
    """Two charts plus harmonic numbers and orb."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "personA": {"date": "1991-07-14", "time": "22:35", "latitude": 19.0760, "longitude": 72.8777},
                "personB": {"date": "1993-02-20", "time": "06:10", "latitude": 28.6139, "longitude": 77.2090},
                "harmonics": [7, 11, 17],
                "orbDeg": 3
            }
        ]
    })

    personA: ChartRequestIn = Field(..., description="First person")
    personB: ChartRequestIn = Field(..., description="Second person")
    harmonics: List[int] = Field(default_factory=lambda: [7, 11, 17], description="Harmonic multipliers (positive integers).")
    orbDeg: float = Field(default=3.0, ge=0, description="Orb in degrees within harmonic space.")


# --------- Outputs ---------
class ChartPointOut(BaseModel):
    longitude: float
    sign: str
    degree: float
    formatted: str


class PlanetReadingOut(ChartPointOut):
    planetName: str
    speed: float
    retrograde: bool
    house: Optional[int] = None


class BodyErrorOut(BaseModel):
    error: str


class ChartInputOut(BaseModel):
    date: str
    time: str
    place: str
    latitude: float
    longitude: float
    timeZone: str


class AnglesOut(BaseModel):
    ascendant: ChartPointOut
    midheaven: ChartPointOut


class HousesOut(BaseModel):
    system: str
    cusps: List[ChartPointOut]


class NatalChartData(BaseModel):
    input: ChartInputOut
    utc: str
    jdUt: float
    angles: AnglesOut
    houses: HousesOut
    planets: Dict[str, Union[PlanetReadingOut, BodyErrorOut]]


class NatalChartOut(BaseModel):
    data: NatalChartData


class AspectMatchOut(BaseModel):
    pointA: str
    pointB: str
    aspect: str
    exactAngle: float
    orb: float = Field(..., description="Distance from exact aspect in degrees.")
    strength: float = Field(..., description="Weighted tightness 0..1.")


class SynastryData(BaseModel):
    score: int = Field(..., ge=0, le=100)
    evaluatedPairs: int
    highlights: List[AspectMatchOut]
    policyVersion: str


class SynastryOut(BaseModel):
    data: SynastryData


class HarmonicBreakdownOut(BaseModel):
    harmonic: int
    pointsChecked: int
    hitsWithinOrb: int


class HarmonicData(BaseModel):
    score10: float = Field(..., ge=0, le=10)
    breakdown: List[HarmonicBreakdownOut]
    notes: List[str]
    policyVersion: str


class HarmonicOut(BaseModel):
    data: HarmonicData
