"""Keep resume and job-description text inside the model's context budget."""

from dataclasses import dataclass

from resume_analyzer.config import TruncationConfig
from resume_analyzer.models import TruncationInfo

JOB_DESCRIPTION_MARKER = "\n...[Job description truncated]"
RESUME_ELISION_MARKER = "\n\n[... content truncated to fit analysis limits ...]\n\n"

HEAD_FRACTION = 0.6
TAIL_FRACTION = 0.3


@dataclass
class TruncatedText:
    resume_text: str
    job_description: str
    info: TruncationInfo


def truncate_head(text: str, limit: int, marker: str = JOB_DESCRIPTION_MARKER) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def truncate_middle(text: str, limit: int, marker: str = RESUME_ELISION_MARKER) -> str:
    """Keep the opening 60% and closing 30% of ``limit``, dropping the middle."""
    if len(text) <= limit:
        return text
    head_length = int(limit * HEAD_FRACTION)
    tail_length = int(limit * TAIL_FRACTION)
    # text[-0:] would be the whole string
    tail = text[len(text) - tail_length:] if tail_length > 0 else ""
    return text[:head_length] + marker + tail


def fit_to_budget(resume_text: str, job_description: str, config: TruncationConfig) -> TruncatedText:
    """
    Apply the budget policy: cap the job description first, then give the
    resume whatever remains of the overall budget (up to its own cap).
    """
    job_description = job_description or ""

    analyzed_jd = truncate_head(job_description, config.max_job_description_chars)
    remaining_budget = max(0, config.max_total_chars - len(analyzed_jd))
    resume_limit = min(config.max_resume_chars, remaining_budget)
    analyzed_resume = truncate_middle(resume_text, resume_limit)

    resume_truncated = analyzed_resume != resume_text
    jd_truncated = analyzed_jd != job_description

    parts = []
    if resume_truncated:
        parts.append("resume")
    if jd_truncated:
        parts.append("job description")
    if parts:
        message = (
            f"The {' and '.join(parts)} exceeded the analysis size limit and was shortened. "
            "The analysis may be incomplete."
        )
    else:
        message = ""

    info = TruncationInfo(
        resume_truncated=resume_truncated,
        job_description_truncated=jd_truncated,
        original_resume_length=len(resume_text),
        analyzed_resume_length=len(analyzed_resume),
        original_job_description_length=len(job_description),
        analyzed_job_description_length=len(analyzed_jd),
        message=message,
    )
    return TruncatedText(resume_text=analyzed_resume, job_description=analyzed_jd, info=info)
