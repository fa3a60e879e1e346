from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_text_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _as_score(value: Any) -> Optional[float]:
    # Models sometimes quote numbers ("85") despite the schema
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        score = float(value)
    elif isinstance(value, str):
        try:
            score = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    if score < 0 or score > 100:
        return None
    return score


def _as_object(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AtsFriendliness(CamelModel):
    score: Optional[float] = None
    suggestions: Optional[List[str]] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["AtsFriendliness"]:
        data = _as_object(data)
        if data is None:
            return None
        return cls(score=_as_score(data.get("score")), suggestions=_as_text_list(data.get("suggestions")))


class FormattingAndStructure(CamelModel):
    clarity: Optional[str] = None
    suggestions: Optional[List[str]] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["FormattingAndStructure"]:
        data = _as_object(data)
        if data is None:
            return None
        return cls(clarity=_as_text(data.get("clarity")), suggestions=_as_text_list(data.get("suggestions")))


class JobDescriptionMatch(CamelModel):
    match_score: Optional[float] = Field(default=None, alias="matchScore")
    matching_keywords: Optional[List[str]] = Field(default=None, alias="matchingKeywords")
    missing_keywords: Optional[List[str]] = Field(default=None, alias="missingKeywords")
    alignment_feedback: Optional[str] = Field(default=None, alias="alignmentFeedback")

    @classmethod
    def from_payload(cls, data: Any) -> Optional["JobDescriptionMatch"]:
        data = _as_object(data)
        if data is None:
            return None
        return cls(
            match_score=_as_score(data.get("matchScore")),
            matching_keywords=_as_text_list(data.get("matchingKeywords")),
            missing_keywords=_as_text_list(data.get("missingKeywords")),
            alignment_feedback=_as_text(data.get("alignmentFeedback")),
        )


class TruncationInfo(CamelModel):
    resume_truncated: bool = Field(alias="resumeTruncated")
    job_description_truncated: bool = Field(alias="jobDescriptionTruncated")
    original_resume_length: int = Field(alias="originalResumeLength")
    analyzed_resume_length: int = Field(alias="analyzedResumeLength")
    original_job_description_length: int = Field(alias="originalJobDescriptionLength")
    analyzed_job_description_length: int = Field(alias="analyzedJobDescriptionLength")
    message: str

    @property
    def any_truncated(self) -> bool:
        return self.resume_truncated or self.job_description_truncated


class AnalysisResult(CamelModel):
    """Structured feedback returned by the model.

    Every subsection is optional: anything missing or of the wrong type in the
    model output is left as None and omitted from the API response.
    """

    overall_impression: Optional[str] = Field(default=None, alias="overallImpression")
    strengths: Optional[List[str]] = None
    areas_for_improvement: Optional[List[str]] = Field(default=None, alias="areasForImprovement")
    ats_friendliness: Optional[AtsFriendliness] = Field(default=None, alias="atsFriendliness")
    relevant_skills: Optional[List[str]] = Field(default=None, alias="relevantSkills")
    formatting_and_structure: Optional[FormattingAndStructure] = Field(
        default=None, alias="formattingAndStructure"
    )
    job_description_match: Optional[JobDescriptionMatch] = Field(default=None, alias="jobDescriptionMatch")
    truncation_info: Optional[TruncationInfo] = Field(default=None, alias="truncationInfo")

    @classmethod
    def from_payload(cls, data: dict) -> "AnalysisResult":
        return cls(
            overall_impression=_as_text(data.get("overallImpression")),
            strengths=_as_text_list(data.get("strengths")),
            areas_for_improvement=_as_text_list(data.get("areasForImprovement")),
            ats_friendliness=AtsFriendliness.from_payload(data.get("atsFriendliness")),
            relevant_skills=_as_text_list(data.get("relevantSkills")),
            formatting_and_structure=FormattingAndStructure.from_payload(data.get("formattingAndStructure")),
            job_description_match=JobDescriptionMatch.from_payload(data.get("jobDescriptionMatch")),
        )

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class UploadResponse(CamelModel):
    message: str
    file_name: str = Field(alias="fileName")
    analysis: dict
    log_id: Optional[Any] = Field(default=None, alias="logId")


class ContactForm(BaseModel):
    """Raw contact payload; presence and shape are checked by the handler"""

    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


class ContactResponse(BaseModel):
    message: str
    id: Optional[Any] = None
