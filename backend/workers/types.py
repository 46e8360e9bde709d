"""
Typed structures passed between pipeline stages.

These dataclasses define the data flow catalog → queue → strategy →
extraction → ingestion, and the summaries returned to callers.
Anything stored in a JSON column goes through to_dict()/from_dict().
"""

from dataclasses import dataclass, field, asdict
from typing import Optional

from ats.enums import ListingSystem, is_api_available


@dataclass
class DiscoveredCompany:
    """
    A catalog entry.

    Keyed by normalized name (see db.company_service.normalize_company_name).
    """
    name: str
    career_url: str
    listing_system: str = ListingSystem.UNKNOWN.value
    listing_system_id: Optional[str] = None
    provenance: str = "manual"
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_record(cls, record) -> "DiscoveredCompany":
        """Create from a CatalogCompany row."""
        return cls(
            name=record.name,
            career_url=record.career_url,
            listing_system=record.listing_system,
            listing_system_id=record.listing_system_id,
            provenance=record.provenance,
            confidence=record.confidence,
        )


@dataclass
class ClassificationResult:
    """
    Result of classifying a career page.

    Confidence is clamped into [0, 1] on construction.
    """
    listing_system: ListingSystem
    confidence: float
    listing_system_id: Optional[str] = None
    evidence: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.listing_system = ListingSystem.parse(self.listing_system)
        self.confidence = min(max(float(self.confidence), 0.0), 1.0)

    @property
    def api_available(self) -> bool:
        return is_api_available(self.listing_system)

    def to_dict(self) -> dict:
        return {
            "listing_system": self.listing_system.value,
            "listing_system_id": self.listing_system_id,
            "confidence": self.confidence,
            "api_available": self.api_available,
            "evidence": list(self.evidence),
        }


@dataclass
class WorkUnitData:
    """
    One scrape attempt for one company.

    Used both to enqueue (id/run_id unset) and as the claimed unit handed to
    the processor (read back from the work_units row).
    """
    company_name: str
    career_url: str
    listing_system: str = ListingSystem.UNKNOWN.value
    listing_system_id: Optional[str] = None
    priority_class: str = "normal"
    retry_count: int = 0
    max_attempts: int = 3
    id: Optional[int] = None
    run_id: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_company(cls, company: DiscoveredCompany, priority_class: str = "normal") -> "WorkUnitData":
        return cls(
            company_name=company.name,
            career_url=company.career_url,
            listing_system=company.listing_system,
            listing_system_id=company.listing_system_id,
            priority_class=priority_class,
        )

    @classmethod
    def from_record(cls, record) -> "WorkUnitData":
        """Create from a WorkUnit row."""
        return cls(
            id=record.id,
            run_id=record.run_id,
            company_name=record.company_name,
            career_url=record.career_url,
            listing_system=record.listing_system,
            listing_system_id=record.listing_system_id,
            priority_class=record.priority_class,
            retry_count=record.retry_count,
            max_attempts=record.max_attempts,
        )


@dataclass
class RawJobData:
    """
    Unstructured capture of one posting, straight from a strategy.

    external_id is set when the listing system supplies a native id.
    raw_html is set by the HTML capture strategy (cleaned page text, which
    may list many postings). Everything else describes a single listing.
    structured holds a ready-made record (JSON-LD JobPosting, model field
    names) that bypasses the model.
    """
    title: str = ""
    company: str = ""
    location: str = ""
    description: str = ""
    source_url: str = ""
    raw_html: Optional[str] = None
    external_id: Optional[str] = None
    structured: Optional[dict] = None

    @property
    def is_page_capture(self) -> bool:
        return self.raw_html is not None


@dataclass(frozen=True)
class ExtractedJobData:
    """
    Normalized job record produced by the extraction pipeline.

    Immutable. (external_id, source) is the persistence uniqueness key.
    """
    title: str
    company: str
    location: str
    remote_type: str
    description: str
    application_url: str
    external_id: str
    source: str
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    requirements: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()
    benefits: tuple[str, ...] = ()
    confidence: float = 0.8

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("requirements", "skills", "benefits"):
            data[key] = list(data[key])
        return data


@dataclass
class ExtractionResult:
    """Result of AIExtractionPipeline.extract(). success is False if any batch failed."""
    jobs: list[ExtractedJobData] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    success: bool = True
    tokens_used: int = 0
    cost: float = 0.0


@dataclass
class IngestStats:
    """Counts from one ingest() call."""
    inserted: int = 0
    duplicates: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class UnitResult:
    """
    Result of processing one work unit.

    Stored on the work_units row when the unit completes.
    """
    company: str
    listing_system: str
    raw_count: int = 0
    jobs_found: int = 0
    inserted: int = 0
    duplicates: int = 0
    ingest_errors: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "UnitResult":
        return cls(
            company=data["company"],
            listing_system=data.get("listing_system", ListingSystem.UNKNOWN.value),
            raw_count=data.get("raw_count", 0),
            jobs_found=data.get("jobs_found", 0),
            inserted=data.get("inserted", 0),
            duplicates=data.get("duplicates", 0),
            ingest_errors=data.get("ingest_errors", 0),
            errors=list(data.get("errors", [])),
        )


@dataclass
class QueueStats:
    """Queue counts. delayed = waiting units whose backoff has not elapsed."""
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RunConfig:
    """
    Options for one orchestrated run.

    wait=False enqueues and returns immediately (workers in other processes
    drain the queue).
    """
    max_companies: int = 100
    priority: str = "normal"
    trigger: str = "scheduled"
    wait: bool = True
    listing_systems: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: dict, default_max_companies: int = 100) -> "RunConfig":
        return cls(
            max_companies=data.get("max_companies", default_max_companies),
            priority=data.get("priority", "normal"),
            trigger=data.get("trigger", "scheduled"),
            wait=data.get("wait", True),
            listing_systems=data.get("listing_systems"),
        )


@dataclass
class RunSummary:
    """
    Structured summary every run returns, success or not.

    errors maps company name to the error strings collected for it.
    error is the top-level cause when status is 'error'.
    """
    run_id: Optional[int] = None
    status: str = "pending"
    queued: int = 0
    completed: int = 0
    failed: int = 0
    jobs_found: int = 0
    errors: dict[str, list[str]] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
