"""CRUD for records without status side effects: contacts, recruiters, resources."""

import logging
import re

from jobtrack.core.schemas import (
    Contact,
    ContactDraft,
    JobSearch,
    OnlineResource,
    Recruiter,
    RecruiterDraft,
    ResourceDraft,
)

logger = logging.getLogger(__name__)

RECRUITER_SOURCE_PREFIX = "Recruiter - "


def format_phone_number(phone: str) -> str:
    """Render ten-digit numbers as (XXX) XXX-XXXX; anything else is returned as-is."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) != 10:
        return phone
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def recruiter_source(recruiter: Recruiter) -> str:
    """The ``job_source`` text used when an opportunity came through a recruiter."""
    return f"{RECRUITER_SOURCE_PREFIX}{recruiter.name}"


# --- contacts (owned by an opportunity) ------------------------------------


def add_contact(search: JobSearch, opportunity_id: str, draft: ContactDraft) -> JobSearch:
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        logger.debug("Opportunity %s not found - contact dropped", opportunity_id)
        return search
    contact = Contact(**draft.model_dump())
    return search.replace_opportunity(
        opportunity.model_copy(update={"contacts": [*opportunity.contacts, contact]}),
    )


def delete_contact(search: JobSearch, opportunity_id: str, contact_id: str) -> JobSearch:
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        return search
    contacts = [c for c in opportunity.contacts if c.id != contact_id]
    return search.replace_opportunity(opportunity.model_copy(update={"contacts": contacts}))


# --- recruiters -------------------------------------------------------------


def add_recruiter(search: JobSearch, draft: RecruiterDraft) -> tuple[JobSearch, Recruiter]:
    recruiter = Recruiter(**draft.model_dump())
    return search.model_copy(update={"recruiters": [*search.recruiters, recruiter]}), recruiter


def update_recruiter(search: JobSearch, recruiter_id: str, draft: RecruiterDraft) -> JobSearch:
    fields = draft.model_dump()
    recruiters = [r.model_copy(update=fields) if r.id == recruiter_id else r for r in search.recruiters]
    return search.model_copy(update={"recruiters": recruiters})


def delete_recruiter(search: JobSearch, recruiter_id: str) -> JobSearch:
    """Remove a recruiter. Log entries keep the dangling id and render a placeholder."""
    return search.model_copy(
        update={"recruiters": [r for r in search.recruiters if r.id != recruiter_id]},
    )


# --- online resources -------------------------------------------------------


def add_resource(search: JobSearch, draft: ResourceDraft) -> tuple[JobSearch, OnlineResource]:
    resource = OnlineResource(**draft.model_dump())
    return search.model_copy(update={"resources": [*search.resources, resource]}), resource


def update_resource(search: JobSearch, resource_id: str, draft: ResourceDraft) -> JobSearch:
    fields = draft.model_dump()
    resources = [r.model_copy(update=fields) if r.id == resource_id else r for r in search.resources]
    return search.model_copy(update={"resources": resources})


def delete_resource(search: JobSearch, resource_id: str) -> JobSearch:
    return search.model_copy(
        update={"resources": [r for r in search.resources if r.id != resource_id]},
    )
