from __future__ import annotations

from typing import Iterable, Optional

from backend.app.models import CandidateCard

ALL_JOBS = "all"


def normalize_search(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.lower()


def matches_job(card: CandidateCard, job_filter: str) -> bool:
    return job_filter == ALL_JOBS or card.job_id == job_filter


def matches_search(card: CandidateCard, search_text: Optional[str]) -> bool:
    term = normalize_search(search_text)
    if not term:
        return True
    return term in card.name.lower() or term in card.email.lower()


def apply_filters(
    cards: Iterable[CandidateCard],
    job_filter: str = ALL_JOBS,
    search_text: Optional[str] = "",
) -> list[CandidateCard]:
    return [
        card
        for card in cards
        if matches_job(card, job_filter) and matches_search(card, search_text)
    ]


def is_filtered(job_filter: str, search_text: Optional[str]) -> bool:
    return job_filter != ALL_JOBS or bool(normalize_search(search_text))
