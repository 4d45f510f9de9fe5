import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from loguru import logger

from graph.state import CandidateLead, PipelineState
from tools import prompts


@dataclass(frozen=True)
class Outcome:
    """Either the text a completion produced or the error it raised."""
    value: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def render(self, failure_prefix: str) -> str:
        if self.ok:
            return self.value or ""
        return f"{failure_prefix}: {self.error}"


@dataclass(frozen=True)
class QualificationOutcome:
    score: Outcome
    email: Outcome


class Qualifier:
    """Scores a lead and drafts an outreach email concurrently."""

    def __init__(self, llm):
        self.llm = llm

    async def _capture(self, task: str, template: str, variables: Mapping[str, Any]) -> Outcome:
        try:
            return Outcome(value=await self.llm.complete(template, variables))
        except Exception as e:
            logger.error(f"Lead {task} failed: {e}")
            return Outcome(error=e)

    async def qualify(self, lead: CandidateLead, product_description: str) -> QualificationOutcome:
        """
        Run scoring and drafting side by side.

        Both calls are dispatched before either is awaited and the join waits
        for both; a failure in one is recorded in its Outcome and never
        cancels or hides the other. Cancellation of the caller propagates to
        both calls.
        """
        variables = {"lead": lead.text, "product": product_description}
        score, email = await asyncio.gather(
            self._capture("scoring", prompts.SCORING, variables),
            self._capture("drafting", prompts.EMAIL, variables),
        )
        return QualificationOutcome(score=score, email=email)


async def qualify(state: PipelineState, config) -> PipelineState:
    """Score the selected lead and draft an email for it."""
    qualifier: Qualifier = config["configurable"]["qualifier"]
    product_description: str = config["configurable"]["product_description"]
    lead = state["selected_lead"]
    logger.info(f"Starting qualification for lead with score {lead.relevance_score:.3f}")

    outcome = await qualifier.qualify(lead, product_description)

    errors = list(state.get("errors", []))
    if not outcome.score.ok:
        errors.append(f"scoring_failed: {outcome.score.error}")
    if not outcome.email.ok:
        errors.append(f"drafting_failed: {outcome.email.error}")
    if errors:
        logger.warning(f"Qualification finished with partial result: {errors}")

    return {
        "score_justification": outcome.score.render("Error scoring lead"),
        "draft_email": outcome.email.render("Error generating email"),
        "outcome": "qualified",
        "errors": errors,
    }
