"""Prompt templates for the lead validation model."""

from __future__ import annotations

from typing import Final

from app.models.lead import FetchResult, Lead

NOT_PROVIDED: Final[str] = "Not provided"
MAX_PREVIOUS_POSTS: Final[int] = 10

SYSTEM_PROMPT: Final[str] = (
    "You are a strict formatter. Output must be a single valid json object only. "
    "No explanations, no code fences."
)

NEW_BUSINESS_KEYWORDS: Final[tuple[str, ...]] = (
    "now open",
    "grand opening",
    "opening soon",
    "coming soon",
    "just opened",
    "new business",
    "new premises",
    "new branch",
    "new location",
    "relocating",
    "moved to",
    "under new management",
    "new owners",
)
COSMETIC_UPDATE_KEYWORDS: Final[tuple[str, ...]] = (
    "refurbished",
    "renovated",
    "makeover",
    "new look",
    "rebrand",
    "redecorated",
    "new menu",
    "new stock",
    "extended hours",
    "back open",
    "reopening after",
)
# Earlier posts found on the page -> maturity label used to judge "new business" claims.
POSTING_HISTORY_THRESHOLDS: Final[tuple[tuple[int, str], ...]] = (
    (3, "0-3 earlier posts: brand new page, consistent with a genuinely new business"),
    (10, "4-10 earlier posts: young page, new business plausible if the post says so explicitly"),
    (25, "11-25 earlier posts: established page, treat opening claims with caution"),
)
MATURE_HISTORY_LABEL: Final[str] = (
    "more than 25 earlier posts: mature business, announcements are usually cosmetic updates"
)

_RESPONSE_CONTRACT: Final[str] = """Return a single valid json object ONLY with these keys:
{
  "verdict": "GOOD" | "BAD" | "UNCLEAR",
  "reasoning": "Detailed explanation focusing on timing, business type, and sales opportunity potential",
  "confidence": 85,
  "key_factors": ["Primary reasons"],
  "red_flags": ["Concerns"],
  "opportunity_score": 75,
  "recommended_action": "Specific next step"
}"""


def build_prompt(lead: Lead) -> str:
    """Render the user prompt for a single lead."""
    sections = [
        "You are an expert business lead validator for UK B2B.",
        _render_lead_data(lead),
    ]
    if lead.fetch_results is not None:
        sections.append(_render_post_evidence(lead.fetch_results))
    sections.append(_render_guidelines())
    sections.append(_RESPONSE_CONTRACT)
    return "\n\n".join(sections)


def _value(value: str | None) -> str:
    return value or NOT_PROVIDED


def _render_lead_data(lead: Lead) -> str:
    phone = f"Provided ({lead.phone_number})" if lead.phone_number else "Missing"
    return (
        "LEAD DATA:\n"
        f"- Company Name: {_value(lead.company_name)}\n"
        f"- Industry Type: {_value(lead.industry_type)}\n"
        f"- Phone Number: {phone}\n"
        f"- Location: {_value(lead.address_2)}, {_value(lead.postcode)}\n"
        f"- Address: {_value(lead.address_1)}\n"
        f"- Lead Statement: {_value(lead.lead_statement)}\n"
        f"- Proof URL: {_value(lead.proof_url)}\n"
        f"- County: {_value(lead.county)}\n"
        f"- Old Address: {_value(lead.old_address)}"
    )


def _render_post_evidence(fetch_results: FetchResult) -> str:
    raw = fetch_results.raw_data
    lines = [
        "PROOF POST DATA (scraped from the proof URL):",
        f"- Post Timestamp: {_value(raw.posted_at_iso)}",
        f"- Post Text: {_value(raw.post_text)}",
    ]
    if raw.previous_posts:
        lines.append("- Previous Posts:")
        lines.extend(
            f"  {position}. {snippet}"
            for position, snippet in enumerate(raw.previous_posts[:MAX_PREVIOUS_POSTS], start=1)
        )
    else:
        lines.append("- Previous Posts: None found")
    return "\n".join(lines)


def _render_guidelines() -> str:
    history = [f"  - {label}" for _, label in POSTING_HISTORY_THRESHOLDS]
    history.append(f"  - {MATURE_HISTORY_LABEL}")
    return "\n".join(
        [
            "VALIDATION GUIDELINES:",
            "1. A GOOD lead is a genuinely new business, new branch, or relocation that will need services now.",
            "2. New-business signals (favour GOOD): " + ", ".join(f'"{kw}"' for kw in NEW_BUSINESS_KEYWORDS),
            "3. Cosmetic-update signals (favour BAD): " + ", ".join(f'"{kw}"' for kw in COSMETIC_UPDATE_KEYWORDS),
            "4. Posting-history maturity (count the previous posts):",
            *history,
            "5. Missing phone number, address, or proof URL weakens the lead; say so in red_flags.",
            "6. Use UNCLEAR when the evidence does not support either verdict.",
        ]
    )
