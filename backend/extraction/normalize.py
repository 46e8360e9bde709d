"""
Deterministic post-model normalization.

Everything here is a pure function: the model proposes, these rules decide.

- remote type: keyword scan of location + description
    hybrid keyword present        → hybrid (even when remote is also mentioned)
    remote keyword only           → remote
    explicit onsite phrasing      → onsite
    otherwise                     → unknown
- salary: "$X - $Y" pattern (optional k suffix, "-", "–" or "to" separator);
  the regex value wins over whatever the model returned
- description: entities decoded, tags stripped, whitespace collapsed
- records with neither a title nor a company-equivalent name are dropped
"""

import hashlib
import html
import re
from typing import Optional

from models.job_posting import EXTERNAL_ID_MAX_LENGTH
from workers.types import ExtractedJobData, RawJobData

# Curated skill vocabulary, by category
SKILL_CATEGORIES = {
    "languages": [
        "javascript", "typescript", "python", "java", "golang", "rust", "c++", "c#",
        "ruby", "php", "swift", "kotlin", "scala", "sql",
    ],
    "frameworks": [
        "react", "angular", "vue", "node.js", "express", "django", "flask", "fastapi",
        "spring", "rails", "laravel", "next.js", "nuxt", "svelte",
    ],
    "cloud": [
        "aws", "azure", "gcp", "kubernetes", "docker", "terraform", "cloudformation",
        "serverless", "lambda",
    ],
    "data": [
        "machine learning", "deep learning", "data science", "data engineering", "spark",
        "hadoop", "pandas", "numpy", "tensorflow", "pytorch",
    ],
    "devops": [
        "ci/cd", "jenkins", "github actions", "gitlab ci", "ansible", "puppet", "chef",
        "monitoring", "logging",
    ],
    "databases": [
        "postgresql", "mysql", "mongodb", "redis", "elasticsearch", "dynamodb",
        "cassandra", "oracle",
    ],
    "tools": ["git", "jira", "confluence", "figma", "storybook"],
}

ALL_SKILLS = [skill for skills in SKILL_CATEGORIES.values() for skill in skills]

# Word-boundary aware: "java" must not match inside "javascript", "c++" must keep its pluses
_SKILL_PATTERNS = [
    (skill, re.compile(rf"(?<![\w+#]){re.escape(skill)}(?![\w+#])"))
    for skill in ALL_SKILLS
]

HYBRID_KEYWORDS = ("hybrid",)
REMOTE_KEYWORDS = ("remote", "work from home", "work-from-home", "wfh")
ONSITE_KEYWORDS = ("onsite", "on-site", "on site", "in-person", "in person", "in office", "in-office")

_NUMBER = r"(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)"
SALARY_PATTERN = re.compile(
    rf"\$\s?{_NUMBER}\s*([kK])?\s*(?:-|–|—|to)\s*\$?\s?{_NUMBER}\s*([kK])?"
)

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


def detect_remote_type(*texts: Optional[str]) -> str:
    """Classify work arrangement from any number of text fragments."""
    text = " ".join(t for t in texts if t).lower()

    if any(k in text for k in HYBRID_KEYWORDS):
        return "hybrid"
    if any(k in text for k in REMOTE_KEYWORDS):
        return "remote"
    if any(k in text for k in ONSITE_KEYWORDS):
        return "onsite"
    return "unknown"


def _to_amount(number: str, k_suffix: bool) -> float:
    value = float(number.replace(",", ""))
    return value * 1000 if k_suffix else value


def parse_salary(text: Optional[str]) -> tuple[Optional[int], Optional[int]]:
    """
    First "$X - $Y" range in text.

    "$120,000 - $150,000" → (120000, 150000)
    "$120k-$150k"         → (120000, 150000)
    "$120 - 150k"         → (120000, 150000)

    Returns:
        (min, max), or (None, None) when no range is present
    """
    if not text:
        return None, None

    for match in SALARY_PATTERN.finditer(text):
        low_raw, low_k, high_raw, high_k = match.groups()
        high = _to_amount(high_raw, bool(high_k))
        # "$120 - 150k": the k on the upper bound applies to both
        low = _to_amount(low_raw, bool(low_k) or (bool(high_k) and float(low_raw.replace(",", "")) < 1000))
        if high <= 0:
            continue
        if low > high:
            low, high = high, low
        return int(low), int(high)

    return None, None


def clean_description(text: Optional[str]) -> str:
    """Decode entities, strip tags, collapse whitespace."""
    if not text:
        return ""
    # Greenhouse content is entity-encoded HTML, so decode before and after stripping
    text = html.unescape(text)
    text = _TAG_PATTERN.sub(" ", text)
    text = html.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()


def match_skills(text: Optional[str]) -> list[str]:
    """Keyword skills found in text, in vocabulary order."""
    if not text:
        return []
    text_lower = text.lower()
    return [skill for skill, pattern in _SKILL_PATTERNS if pattern.search(text_lower)]


def _string_list(value) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip())


def _unique_lower(values) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        key = value.strip().lower()
        if key:
            seen.setdefault(key, None)
    return tuple(seen)


def _number(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        digits = value.replace(",", "").replace("$", "").strip()
        try:
            return int(float(digits))
        except ValueError:
            return None
    return None


def bound_external_id(value: str) -> str:
    """Ids longer than the job_postings column are replaced by their SHA-1."""
    if len(value) <= EXTERNAL_ID_MAX_LENGTH:
        return value
    return hashlib.sha1(value.encode("utf-8")).hexdigest()


def build_external_id(company: str, title: str, location: str, application_url: str) -> str:
    """
    Stable id when the listing system gave us none.

    The application URL is unique per posting when present; otherwise a hash
    of company/title/location.
    """
    if application_url:
        return bound_external_id(application_url)
    key = "|".join(part.strip().lower() for part in (company, title, location))
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


def normalize_record(
    record: dict,
    source: str,
    raw: Optional[RawJobData] = None,
) -> Optional[ExtractedJobData]:
    """
    Turn one model-proposed record into an ExtractedJobData.

    Args:
        record: One job object from the model response
        source: Source tag for persistence (listing system)
        raw: The raw posting this record was extracted from, when known

    A raw single listing lends the record its native id and URL. A captured
    page lists many postings, so its URL is never used as a record's id.

    Returns:
        ExtractedJobData, or None if the record has neither title nor company
    """
    if not isinstance(record, dict):
        return None

    title = str(record.get("title") or record.get("name") or "").strip()
    company = str(record.get("company") or record.get("companyName") or "").strip()
    if not title and not company:
        return None

    if raw is not None:
        title = title or raw.title
        company = company or raw.company

    listing = raw if raw is not None and not raw.is_page_capture else None
    page_url = raw.source_url if raw is not None and raw.is_page_capture else ""

    location = str(record.get("location") or (raw.location if raw else "") or "").strip()
    model_description = str(record.get("description") or record.get("desc") or "")
    raw_description = (raw.description if raw else "") or ""
    description = clean_description(model_description or raw_description)
    application_url = str(
        record.get("applicationUrl") or record.get("applyUrl") or record.get("url")
        or (listing.source_url if listing else "") or ""
    ).strip()

    # Regex over everything we know about the posting; the model's own numbers only as fallback
    salary_min, salary_max = parse_salary(" ".join([
        title,
        model_description,
        str(record.get("salary") or ""),
        raw_description,
    ]))
    salary_currency = "USD" if salary_min is not None else None
    if salary_min is None:
        salary_min = _number(record.get("salaryMin"))
        salary_max = _number(record.get("salaryMax"))
        if salary_min is not None or salary_max is not None:
            salary_currency = str(record.get("salaryCurrency") or "USD")[:10]

    remote_type = detect_remote_type(
        location,
        model_description,
        raw.location if raw else "",
        raw_description,
    )

    if listing is not None and listing.external_id:
        external_id = bound_external_id(str(listing.external_id))
    else:
        id_url = "" if application_url == page_url else application_url
        external_id = build_external_id(company, title, location, id_url)

    confidence = record.get("confidence", 0.8)
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
        confidence = 0.8

    return ExtractedJobData(
        title=title,
        company=company,
        location=location,
        remote_type=remote_type,
        description=description,
        application_url=application_url,
        external_id=external_id,
        source=source,
        salary_min=salary_min,
        salary_max=salary_max,
        salary_currency=salary_currency,
        requirements=_string_list(record.get("requirements")),
        skills=_unique_lower(_string_list(record.get("skills"))),
        benefits=_string_list(record.get("benefits")),
        confidence=min(max(float(confidence), 0.0), 1.0),
    )
