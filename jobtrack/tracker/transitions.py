"""Status transition engine.

Every status change appends an automated ``status_change`` log entry. A
direct change also stamps ``date_applied`` (the last-status-change date) with
today's local date; interview-driven changes leave it alone.

Two kinds of trigger:
  - direct: edit form or quick status chip. Same status is a no-op.
  - interview-driven: adding an interview forces "interview"; removing the
    last interview forces "applied". An entry is logged only when the forced
    status differs from the one before.
Editing other fields never touches date_applied and never logs.
"""

import logging
from datetime import datetime

from jobtrack.core.schemas import (
    Interview,
    InterviewDraft,
    JobOpportunity,
    JobSearch,
    OpportunityDraft,
    OpportunityPatch,
)
from jobtrack.tracker.activity_log import append_entry, automated_entry

logger = logging.getLogger(__name__)


def _transition(
    search: JobSearch,
    opportunity: JobOpportunity,
    new_status: str,
    now: datetime,
    *,
    stamp_date: bool = True,
    **updates: object,
) -> JobSearch:
    """Replace *opportunity* with *new_status* (plus *updates*), logging if it changed."""
    old_status = opportunity.status
    changed = new_status != old_status
    if changed:
        updates["status"] = new_status
        if stamp_date:
            updates["date_applied"] = now.date()
    updated = opportunity.model_copy(update=updates)
    search = search.replace_opportunity(updated)
    if changed:
        logger.info(
            "Opportunity %s (%s): %s -> %s",
            opportunity.id, opportunity.company, old_status, new_status,
        )
        search = append_entry(
            search,
            automated_entry(
                old_status,
                new_status,
                updated.company,
                updated.position,
                opportunity_id=updated.id,
                now=now,
            ),
        )
    return search


def apply_status_change(
    search: JobSearch,
    opportunity_id: str,
    new_status: str,
    now: datetime | None = None,
) -> JobSearch:
    """Direct status change (edit form or quick status menu)."""
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        logger.debug("Opportunity %s not found - status unchanged", opportunity_id)
        return search
    if opportunity.status == new_status:
        return search
    return _transition(search, opportunity, new_status, now or datetime.now())


def add_opportunity(
    search: JobSearch,
    draft: OpportunityDraft,
    now: datetime | None = None,
) -> tuple[JobSearch, JobOpportunity]:
    """Create an opportunity and its "Job Added" log entry."""
    now = now or datetime.now()
    fields = draft.model_dump(exclude={"date_applied"})
    opportunity = JobOpportunity(
        **fields,
        date_applied=draft.date_applied or now.date(),
        created_at=now,
    )
    search = search.model_copy(update={"opportunities": [*search.opportunities, opportunity]})
    search = append_entry(
        search,
        automated_entry(
            "",
            opportunity.status,
            opportunity.company,
            opportunity.position,
            opportunity_id=opportunity.id,
            now=now,
        ),
    )
    return search, opportunity


def update_opportunity(
    search: JobSearch,
    opportunity_id: str,
    patch: OpportunityPatch,
    now: datetime | None = None,
) -> JobSearch:
    """Merge *patch* into an opportunity; a status change goes through the engine."""
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        logger.debug("Opportunity %s not found - nothing to update", opportunity_id)
        return search
    changes = patch.field_changes()
    new_status = patch.status or opportunity.status
    if new_status == opportunity.status:
        return search.replace_opportunity(opportunity.model_copy(update=changes))
    return _transition(search, opportunity, new_status, now or datetime.now(), **changes)


def delete_opportunity(search: JobSearch, opportunity_id: str) -> JobSearch:
    return search.model_copy(
        update={"opportunities": [o for o in search.opportunities if o.id != opportunity_id]},
    )


def add_interview(
    search: JobSearch,
    opportunity_id: str,
    draft: InterviewDraft,
    now: datetime | None = None,
) -> JobSearch:
    """Attach an interview; the opportunity is forced into "interview"."""
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        logger.debug("Opportunity %s not found - interview dropped", opportunity_id)
        return search
    interview = Interview(**draft.model_dump())
    return _transition(
        search,
        opportunity,
        "interview",
        now or datetime.now(),
        stamp_date=False,
        interviews=[*opportunity.interviews, interview],
    )


def delete_interview(
    search: JobSearch,
    opportunity_id: str,
    interview_id: str,
    now: datetime | None = None,
) -> JobSearch:
    """Remove an interview; removing the last one reverts the status to "applied"."""
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        return search
    interviews = [i for i in opportunity.interviews if i.id != interview_id]
    if len(interviews) == len(opportunity.interviews):
        logger.debug("Interview %s not found on %s", interview_id, opportunity_id)
        return search
    new_status = "applied" if not interviews else opportunity.status
    return _transition(
        search, opportunity, new_status, now or datetime.now(), stamp_date=False, interviews=interviews,
    )
