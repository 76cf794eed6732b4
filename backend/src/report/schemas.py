from pydantic import BaseModel, Field


class PersonalityTrait(BaseModel):
    name: str
    value: int = Field(..., ge=0, le=100)


class SchoolRecommendation(BaseModel):
    id: str
    name: str
    match_score: int = Field(..., ge=0, le=100)
    type: str
    location: str


class ReportData(BaseModel):
    personality_traits: list[PersonalityTrait] = []
    recommended_schools: list[SchoolRecommendation] = []
    career_paths: list[str] = []
