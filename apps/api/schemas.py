from pydantic import BaseModel, ConfigDict, Field
from typing import List


class SwotAnalysisPayload(BaseModel):
    """Structured SWOT analysis returned by the insight model."""
    model_config = ConfigDict(populate_by_name=True)

    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)
    overall_assessment: str = Field(alias="overallAssessment")
