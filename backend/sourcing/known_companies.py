"""
Curated seed lists for the company catalog.

KNOWN_COMPANIES: hand-verified employers with their listing system and
board token (provenance manual, confidence 1.0).

PATTERN_COMPANIES: employers whose board token is a likely guess; the
career URL is generated from the listing system's board URL template
(provenance pattern, confidence 0.7). The classifier re-tags them on the
first run if the guess was wrong.
"""

from ats.enums import ListingSystem
from ats.signatures import board_url
from db.company_service import normalize_company_name
from models.discovered_company import Provenance
from workers.types import DiscoveredCompany

MANUAL_CONFIDENCE = 1.0
PATTERN_CONFIDENCE = 0.7

# (name, career_url, listing_system, board token)
_KNOWN = [
    # Greenhouse
    ("Stripe", "https://stripe.com/jobs", ListingSystem.GREENHOUSE, "stripe"),
    ("Airbnb", "https://careers.airbnb.com/", ListingSystem.GREENHOUSE, "airbnb"),
    ("Discord", "https://discord.com/careers", ListingSystem.GREENHOUSE, "discord"),
    ("Figma", "https://www.figma.com/careers/", ListingSystem.GREENHOUSE, "figma"),
    ("Coinbase", "https://www.coinbase.com/careers", ListingSystem.GREENHOUSE, "coinbase"),
    ("Instacart", "https://careers.instacart.com/", ListingSystem.GREENHOUSE, "instacart"),
    ("Robinhood", "https://robinhood.com/us/en/careers/", ListingSystem.GREENHOUSE, "robinhood"),
    ("Datadog", "https://careers.datadoghq.com/", ListingSystem.GREENHOUSE, "datadog"),
    ("Duolingo", "https://careers.duolingo.com/", ListingSystem.GREENHOUSE, "duolingo"),
    ("GitLab", "https://about.gitlab.com/jobs/", ListingSystem.GREENHOUSE, "gitlab"),
    ("Databricks", "https://databricks.com/careers", ListingSystem.GREENHOUSE, "databricks"),
    ("Brex", "https://www.brex.com/careers", ListingSystem.GREENHOUSE, "brex"),
    ("Scale AI", "https://scale.com/careers", ListingSystem.GREENHOUSE, "scaleai"),
    ("Anduril", "https://www.anduril.com/careers/", ListingSystem.GREENHOUSE, "anduril"),
    ("Cockroach Labs", "https://www.cockroachlabs.com/careers/", ListingSystem.GREENHOUSE, "cockroachlabs"),
    ("Amplitude", "https://amplitude.com/careers", ListingSystem.GREENHOUSE, "amplitude"),
    ("Confluent", "https://www.confluent.io/careers/", ListingSystem.GREENHOUSE, "confluent"),
    # Lever
    ("Plaid", "https://plaid.com/careers/", ListingSystem.LEVER, "plaid"),
    ("Netflix", "https://jobs.netflix.com/", ListingSystem.LEVER, "netflix"),
    ("Palantir", "https://www.palantir.com/careers/", ListingSystem.LEVER, "palantir"),
    ("Spotify", "https://www.lifeatspotify.com/jobs", ListingSystem.LEVER, "spotify"),
    ("Zoox", "https://zoox.com/careers", ListingSystem.LEVER, "zoox"),
    # Ashby
    ("Ramp", "https://ramp.com/careers", ListingSystem.ASHBY, "ramp"),
    ("Notion", "https://www.notion.so/careers", ListingSystem.ASHBY, "notion"),
    ("Linear", "https://linear.app/careers", ListingSystem.ASHBY, "linear"),
    ("Deel", "https://www.deel.com/careers", ListingSystem.ASHBY, "deel"),
    ("Retool", "https://retool.com/careers", ListingSystem.ASHBY, "retool"),
    # SmartRecruiters
    ("Visa", "https://jobs.smartrecruiters.com/Visa", ListingSystem.SMARTRECRUITERS, "Visa"),
    ("Bosch", "https://jobs.smartrecruiters.com/BoschGroup", ListingSystem.SMARTRECRUITERS, "BoschGroup"),
    # Workday
    ("Salesforce", "https://careers.salesforce.com/jobs", ListingSystem.WORKDAY, "salesforce"),
    ("Adobe", "https://careers.adobe.com/us/en/search-results", ListingSystem.WORKDAY, "adobe"),
    ("Workday", "https://workday.wd5.myworkdayjobs.com/Workday", ListingSystem.WORKDAY, "workday"),
    ("Nvidia", "https://nvidia.wd5.myworkdayjobs.com/NVIDIAExternalCareerSite", ListingSystem.WORKDAY, "nvidia"),
]

# (name, board token, guessed listing system)
_PATTERNS = [
    ("Anthropic", "anthropic", ListingSystem.GREENHOUSE),
    ("Hugging Face", "huggingface", ListingSystem.GREENHOUSE),
    ("Replit", "replit", ListingSystem.GREENHOUSE),
    ("Vercel", "vercel", ListingSystem.GREENHOUSE),
    ("Supabase", "supabase", ListingSystem.GREENHOUSE),
    ("PlanetScale", "planetscale", ListingSystem.GREENHOUSE),
    ("Okta", "okta", ListingSystem.GREENHOUSE),
    ("MongoDB", "mongodb", ListingSystem.GREENHOUSE),
    ("Elastic", "elastic", ListingSystem.GREENHOUSE),
    ("Fastly", "fastly", ListingSystem.GREENHOUSE),
    ("JFrog", "jfrog", ListingSystem.GREENHOUSE),
    ("Pulumi", "pulumi", ListingSystem.GREENHOUSE),
    ("Airtable", "airtable", ListingSystem.GREENHOUSE),
    ("Mixpanel", "mixpanel", ListingSystem.GREENHOUSE),
    ("Braze", "braze", ListingSystem.GREENHOUSE),
    ("CoreWeave", "coreweave", ListingSystem.GREENHOUSE),
    ("Cerebras", "cerebras", ListingSystem.GREENHOUSE),
    ("AssemblyAI", "assemblyai", ListingSystem.GREENHOUSE),
    ("Deepgram", "deepgram", ListingSystem.GREENHOUSE),
    ("Webflow", "webflow", ListingSystem.GREENHOUSE),
    ("Canva", "canva", ListingSystem.LEVER),
    ("Miro", "miro", ListingSystem.LEVER),
    ("Zapier", "zapier", ListingSystem.LEVER),
    ("Weights & Biases", "wandb", ListingSystem.LEVER),
    ("Runway", "runwayml", ListingSystem.ASHBY),
    ("ElevenLabs", "elevenlabs", ListingSystem.ASHBY),
    ("Synthesia", "synthesia", ListingSystem.ASHBY),
]


KNOWN_COMPANIES: list[DiscoveredCompany] = [
    DiscoveredCompany(
        name=name,
        career_url=career_url,
        listing_system=listing_system.value,
        listing_system_id=token,
        provenance=Provenance.MANUAL,
        confidence=MANUAL_CONFIDENCE,
    )
    for name, career_url, listing_system, token in _KNOWN
]

PATTERN_COMPANIES: list[DiscoveredCompany] = [
    DiscoveredCompany(
        name=name,
        career_url=board_url(listing_system, token),
        listing_system=listing_system.value,
        listing_system_id=token,
        provenance=Provenance.PATTERN,
        confidence=PATTERN_CONFIDENCE,
    )
    for name, token, listing_system in _PATTERNS
]


def seed_companies() -> list[DiscoveredCompany]:
    """Known companies first, then pattern companies not already known."""
    seen = set()
    companies = []
    for company in KNOWN_COMPANIES + PATTERN_COMPANIES:
        key = normalize_company_name(company.name)
        if key in seen:
            continue
        seen.add(key)
        companies.append(company)
    return companies
