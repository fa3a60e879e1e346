import asyncio
import json
import re
from typing import Any

from azure.ai.inference.aio import ChatCompletionsClient
from azure.ai.inference.models import SystemMessage, UserMessage
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError, HttpResponseError

from resume_analyzer.config import LLMConfig, TruncationConfig
from resume_analyzer.errors import AnalysisFailedError, ServiceNotConfiguredError
from resume_analyzer.logger import get_logger
from resume_analyzer.models import AnalysisResult
from resume_analyzer.services.truncation import fit_to_budget

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are an expert AI resume analyzer. Output only valid JSON."

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```", re.IGNORECASE)


class CVAnalyzer:
    """Service for analyzing resume text with an OpenRouter-hosted model"""

    def __init__(self, llm_config: LLMConfig, truncation_config: TruncationConfig):
        self.llm_config = llm_config
        self.truncation_config = truncation_config

    async def analyze(self, resume_text: str, job_description: str = "") -> AnalysisResult:
        """
        Analyze resume text (optionally against a job description) and return structured feedback
        """
        if not self.llm_config.api_key:
            raise ServiceNotConfiguredError("AI Service is not configured. Missing API Key.")

        fitted = fit_to_budget(resume_text, job_description or "", self.truncation_config)
        if fitted.info.any_truncated:
            logger.warning(
                "Input truncated before analysis (resume %d -> %d chars, job description %d -> %d chars)",
                fitted.info.original_resume_length,
                fitted.info.analyzed_resume_length,
                fitted.info.original_job_description_length,
                fitted.info.analyzed_job_description_length,
            )

        prompt = self._create_analysis_prompt(fitted.resume_text, fitted.job_description)
        response_text = await self._call_model(prompt)
        result = self._parse_analysis_response(response_text)

        if fitted.info.any_truncated:
            result.truncation_info = fitted.info
        return result

    def _create_analysis_prompt(self, resume_text: str, job_description: str) -> str:
        """Create the analysis prompt; the job match section is only requested when a JD is given"""

        base_prompt = """You are an expert AI resume analyzer. Analyze the following resume text.
Provide a detailed, structured analysis in JSON format. The JSON output MUST be a single, valid JSON object and nothing else. Do not include any markdown formatting (like ```json) around the JSON output.

The JSON structure should include:
- "overallImpression": "string (1-2 sentences summary)"
- "strengths": ["string array of key strengths"]
- "areasForImprovement": ["string array of specific, actionable suggestions"]
- "atsFriendliness": { "score": "number (0-100, estimate)", "suggestions": ["string array for ATS optimization"] }
- "relevantSkills": ["string array of skills extracted from the resume relevant to general job applications"]
- "formattingAndStructure": { "clarity": "string (e.g., Good, Fair, Needs Improvement)", "suggestions": ["string array for formatting improvements"] }"""

        if job_description and job_description.strip():
            return f"""{base_prompt}
- "jobDescriptionMatch": {{
 "matchScore": "number (0-100, estimate of how well the resume matches the JD)",
 "matchingKeywords": ["string array of keywords from JD found in resume"],
 "missingKeywords": ["string array of important keywords from JD NOT found in resume"],
 "alignmentFeedback": "string (feedback on how well the resume aligns with the JD and suggestions for improvement)"
}}

Resume Text:
---
{resume_text}
---

Job Description:
---
{job_description}
---
"""

        return f"""{base_prompt}

Resume Text:
---
{resume_text}
---
Provide general feedback as no job description was provided.
"""

    async def _call_model(self, prompt: str) -> str:
        """Call the chat-completions endpoint through the Azure AI Inference client"""
        logger.info("Sending analysis request with model: %s", self.llm_config.model_name)
        try:
            async with ChatCompletionsClient(
                endpoint=self.llm_config.endpoint,
                credential=AzureKeyCredential(self.llm_config.api_key),
            ) as client:
                response = await asyncio.wait_for(
                    client.complete(
                        messages=[
                            SystemMessage(SYSTEM_PROMPT),
                            UserMessage(prompt),
                        ],
                        model=self.llm_config.model_name,
                        response_format="json_object",
                        headers={
                            "HTTP-Referer": self.llm_config.site_url,
                            "X-Title": self.llm_config.app_name,
                        },
                    ),
                    timeout=self.llm_config.timeout_seconds,
                )
        except asyncio.TimeoutError:
            logger.error("Analysis request timed out after %ss", self.llm_config.timeout_seconds)
            raise AnalysisFailedError(
                "Failed to get analysis from AI service.",
                details=f"Request timed out after {self.llm_config.timeout_seconds:g} seconds",
            )
        except HttpResponseError as e:
            upstream = self._upstream_message(e)
            logger.error("AI service returned HTTP %s: %s", e.status_code, upstream)
            raise AnalysisFailedError("Failed to get analysis from AI service.", details=upstream)
        except AzureError as e:
            logger.error("Error calling AI service: %s", e)
            raise AnalysisFailedError("Failed to get analysis from AI service.", details=str(e))
        except ValueError as e:
            # a 2xx reply whose body is not JSON (e.g. an HTML gateway page)
            logger.error("AI service returned an unreadable response body: %s", e)
            raise AnalysisFailedError("Failed to get analysis from AI service.", details=str(e))

        if not response or not response.choices or not response.choices[0].message:
            logger.error("Invalid or empty response from AI service")
            raise AnalysisFailedError("No analysis content received from AI service.")

        content = response.choices[0].message.content
        if not content:
            raise AnalysisFailedError("No analysis content received from AI service.")
        logger.debug("Raw AI response: %s", content)
        return content

    def _upstream_message(self, error: HttpResponseError) -> str:
        odata_error = getattr(error, "error", None)
        if odata_error is not None and getattr(odata_error, "message", None):
            return odata_error.message
        return error.message or str(error)

    def _parse_analysis_response(self, response: str) -> AnalysisResult:
        """Parse the model's reply, falling back to a fenced code block when it is not bare JSON"""
        data = self._load_json(response)

        if not isinstance(data, dict):
            logger.warning("AI response is JSON but not an object")
            raise AnalysisFailedError("AI response format unexpected.", details=response[:500])

        result = AnalysisResult.from_payload(data)
        if not result.overall_impression:
            logger.warning("AI response missing overallImpression")
            raise AnalysisFailedError("AI response format unexpected.", details=response[:500])

        return result

    def _load_json(self, response: str) -> Any:
        try:
            return json.loads(response)
        except json.JSONDecodeError as parse_error:
            logger.warning("Error parsing AI JSON response: %s", parse_error)

        match = _FENCED_JSON.search(response)
        if match:
            try:
                logger.info("Attempting to parse JSON from markdown block.")
                return json.loads(match.group(1))
            except json.JSONDecodeError as nested_error:
                logger.error("Error parsing JSON from markdown block: %s", nested_error)
                raise AnalysisFailedError(
                    "AI response was not valid JSON, even after attempting to extract from markdown.",
                    details=response[:500],
                )

        raise AnalysisFailedError("AI response was not valid JSON.", details=response[:500])
