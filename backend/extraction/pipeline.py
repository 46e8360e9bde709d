"""
AI Extraction Pipeline

Turns RawJobData (API postings or captured career-page markup) into
ExtractedJobData with a fixed schema.

Workflow:
1. Split input into batches (default 10) to bound prompt size and cost
2. Per batch: one JSON-mode model call with a fixed schema instruction
3. Parse the body - a JSON array, or an object wrapping it under "jobs"
4. Normalize each record deterministically (extraction.normalize)

Postings that already carry structured data (RawJobData.structured, from
JSON-LD) are normalized directly without a model call.

Error isolation:
- A failing batch (API error, malformed/non-JSON body) is recorded as
  "Batch N failed: <cause>" and the remaining batches still run
- success is False when any batch failed
- ModelAuthenticationError is not a batch failure; it propagates and ends the run
"""

import json
import logging
import re
from typing import Optional

from extraction.model_client import ModelClient, estimate_cost
from extraction.normalize import match_skills, normalize_record
from utils.errors import FatalPipelineError, MalformedModelResponse
from workers.types import ExtractedJobData, ExtractionResult, RawJobData

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
PROMPT_DESCRIPTION_CHARS = 3000
SKILL_PROMPT_CHARS = 2000
MIN_KEYWORD_SKILLS = 3

EXTRACTION_SYSTEM_PROMPT = """You are an expert job posting parser. Your task is to extract structured information from job postings.

Extract the following fields:
- title: Job title (e.g., "Senior Software Engineer")
- company: Company name
- location: Location (e.g., "San Francisco, CA", "Remote")
- remoteType: "remote" | "hybrid" | "onsite" | "unknown"
- salaryMin: Minimum salary (just number, e.g., 100000)
- salaryMax: Maximum salary (just number)
- salaryCurrency: Currency (e.g., "USD")
- description: Clean job description (remove HTML, keep formatting)
- requirements: Array of key requirements
- skills: Array of required skills (technical and soft)
- benefits: Array of benefits mentioned
- applicationUrl: Direct URL to apply
- ref: The Ref number of the input posting this job was extracted from (copy it exactly)

A single input may be a whole careers page listing several jobs; return one object per job,
each carrying the Ref of that page.
Return ONLY valid JSON of the form {"jobs": [...]}."""

SKILLS_SYSTEM_PROMPT = (
    'Extract technical skills from job posting. Return JSON of the form {"skills": ["..."]}.'
)


def build_user_prompt(batch: list[RawJobData]) -> str:
    """
    User message listing each raw posting under a Ref number (1-based
    position in the batch) that the model echoes back on every record.

    Descriptions are truncated; captured page text is already bounded by
    the capture strategy and is passed whole.
    """
    sections = []
    for ref, job in enumerate(batch, start=1):
        if job.description:
            body = job.description[:PROMPT_DESCRIPTION_CHARS]
        else:
            body = job.raw_html or "N/A"
        sections.append(
            f"--- Job {ref} ---\n"
            f"Ref: {ref}\n"
            f"Title: {job.title or 'N/A'}\n"
            f"Company: {job.company or 'N/A'}\n"
            f"Location: {job.location or 'N/A'}\n"
            f"URL: {job.source_url or 'N/A'}\n"
            f"Description:\n{body}\n"
        )
    return (
        f"Extract structured data from these {len(batch)} job postings:\n\n"
        + "\n".join(sections)
        + "\nReturn JSON."
    )


def parse_model_jobs(content: str) -> list[dict]:
    """
    Parse a model body into job records.

    Accepts a JSON array or an object with the array under "jobs". A single
    job object (has a title) is wrapped into a one-element list.

    Raises:
        MalformedModelResponse: Body is not JSON or not job-shaped
    """
    if not content or not content.strip():
        raise MalformedModelResponse("Empty model response")
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedModelResponse(f"Model response is not valid JSON: {e.msg}") from e

    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        jobs = parsed.get("jobs")
        if isinstance(jobs, list):
            return jobs
        if "title" in parsed or "name" in parsed:
            return [parsed]
        return []
    raise MalformedModelResponse(f"Unexpected JSON type: {type(parsed).__name__}")


def _record_ref(record) -> Optional[int]:
    """The Ref a record echoes back, as an int ("2", 2 and "Job 2" all give 2)."""
    if not isinstance(record, dict):
        return None
    value = record.get("ref")
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = re.search(r"\d+", str(value))
    return int(match.group()) if match else None


def pair_with_raw(records: list, batch: list[RawJobData]) -> list[Optional[RawJobData]]:
    """
    Raw posting each model record was extracted from, by its echoed Ref.

    Position and title are never used: the model may reorder records and
    titles repeat across locations. A record whose Ref does not resolve is
    left unpaired (None) and gets a content-hash id downstream. The one
    exception is a single-posting batch with no Ref at all, where there is
    no neighbour to confuse it with.
    """
    paired = []
    for record in records:
        ref = _record_ref(record)
        if ref is None and len(batch) == 1 and isinstance(record, dict) and "ref" not in record:
            paired.append(batch[0])
        elif ref is not None and 1 <= ref <= len(batch):
            paired.append(batch[ref - 1])
        else:
            paired.append(None)
    return paired


class AIExtractionPipeline:
    """
    Batching normalizer over an injected ModelClient.

    Example:
        pipeline = AIExtractionPipeline(model_client, model="gpt-4o-mini")
        result = await pipeline.extract(raw_jobs, source="greenhouse")
    """

    def __init__(
        self,
        model_client: ModelClient,
        model: str = "gpt-4o-mini",
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_tokens: int = 4000,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.model_client = model_client
        self.model = model
        self.batch_size = batch_size
        self.max_tokens = max_tokens

    async def extract(self, raw_jobs: list[RawJobData], source: str = "ai") -> ExtractionResult:
        """
        Extract structured jobs from raw postings.

        Args:
            raw_jobs: Raw postings from a strategy
            source: Source tag stamped on every record (listing system)

        Returns:
            ExtractionResult with jobs from all successful batches and one
            error string per failed batch

        Raises:
            FatalPipelineError: Model endpoint unauthenticated
        """
        result = ExtractionResult()
        if not raw_jobs:
            return result

        # Postings that arrived with structured data (JSON-LD) skip the model
        for raw in raw_jobs:
            if raw.structured is not None:
                normalized = normalize_record(raw.structured, source=source, raw=raw)
                if normalized is not None:
                    result.jobs.append(normalized)
        unstructured = [raw for raw in raw_jobs if raw.structured is None]

        total_batches = (len(unstructured) + self.batch_size - 1) // self.batch_size

        for index in range(total_batches):
            batch = unstructured[index * self.batch_size:(index + 1) * self.batch_size]
            batch_number = index + 1
            logger.info(f"[AI Extraction] Processing batch {batch_number}/{total_batches} ({len(batch)} postings)")

            try:
                jobs, tokens = await self._extract_batch(batch, source)
            except FatalPipelineError:
                raise
            except Exception as e:
                logger.warning(f"[AI Extraction] Batch {batch_number} failed: {e}")
                result.errors.append(f"Batch {batch_number} failed: {e}")
                continue

            result.jobs.extend(jobs)
            result.tokens_used += tokens
            result.cost += estimate_cost(self.model, tokens)

        result.success = not result.errors
        logger.info(
            f"[AI Extraction] Extracted {len(result.jobs)} jobs from {len(raw_jobs)} postings "
            f"(${result.cost:.4f}, {len(result.errors)} failed batches)"
        )
        return result

    async def _extract_batch(
        self,
        batch: list[RawJobData],
        source: str,
    ) -> tuple[list[ExtractedJobData], int]:
        completion = await self.model_client.complete_json(
            EXTRACTION_SYSTEM_PROMPT,
            build_user_prompt(batch),
            self.max_tokens,
        )
        records = parse_model_jobs(completion.content)

        jobs = []
        for record, raw in zip(records, pair_with_raw(records, batch)):
            normalized = normalize_record(record, source=source, raw=raw)
            if normalized is not None:
                jobs.append(normalized)
        return jobs, completion.total_tokens

    async def extract_skills(self, text: str) -> list[str]:
        """
        Skills mentioned in text.

        Keyword matching first; one model call only when fewer than 3 skills
        matched. A failed model call falls back to the keyword result.
        """
        skills = match_skills(text)
        if len(skills) >= MIN_KEYWORD_SKILLS:
            return skills

        try:
            completion = await self.model_client.complete_json(
                SKILLS_SYSTEM_PROMPT,
                (text or "")[:SKILL_PROMPT_CHARS],
                500,
            )
            parsed = json.loads(completion.content)
        except FatalPipelineError:
            raise
        except Exception as e:
            logger.warning(f"[AI Extraction] Skill escalation failed, using keyword matches: {e}")
            return skills

        model_skills = parsed if isinstance(parsed, list) else (
            parsed.get("skills", []) if isinstance(parsed, dict) else []
        )
        found = dict.fromkeys(skills)
        for skill in model_skills:
            if isinstance(skill, str) and skill.strip():
                found.setdefault(skill.strip().lower(), None)
        return list(found)
