"""
Verification orchestrator.

verify() turns one DrugQuery into exactly one VerificationVerdict:

1. an empty query is suspect straight away
2. the query's code is looked up in every evidence source
3. models are tried in chain order (primary with evidence, fallback from
   knowledge alone); the first one that identifies the drug wins
4. if none does, the fixed fail-safe verdict is returned

verify() never raises. Persisting the result is the caller's job.
"""
import logging
from dataclasses import dataclass
from typing import Sequence

from config.system_prompts import APPROVED_DRUGS_NOTE, VERIFIER, VERIFY_KNOWLEDGE_ONLY, VERIFY_WITH_EVIDENCE
from services.errors import ModelInvocationFailed
from services.lookups import gather_evidence, render_evidence
from services.providers import ModelProvider
from services.rules import apply_rules
from services.schemas import DrugQuery, LookupResult, VerificationVerdict, is_identified

logger = logging.getLogger(__name__)

FAILSAFE_REASON = (
    "Verification could not be completed: none of the AI models returned a usable analysis. "
    "Treat this drug as suspect until it has been checked manually."
)
MISSING_IDENTIFIER_REASON = (
    "No identifier was provided. Enter a drug name, NDC, GTIN, NAFDAC number, barcode or query text "
    "so the drug can be verified."
)


@dataclass(frozen=True)
class ModelAttempt:
    provider: ModelProvider
    use_evidence: bool = True


def failsafe_verdict(evidence: Sequence[LookupResult] = ()) -> VerificationVerdict:
    return VerificationVerdict(
        is_suspect=True,
        reason=FAILSAFE_REASON,
        drug_name="N/A",
        manufacturer="N/A",
        approval_info="N/A",
        source_model=None,
        evidence=list(evidence),
    )


class VerificationOrchestrator:
    def __init__(self, lookups: Sequence, attempts: Sequence[ModelAttempt], approved_drugs: Sequence[str] = ()):
        self.lookups = list(lookups)
        self.attempts = list(attempts)
        self.approved_drugs = list(approved_drugs)

    def render_prompt(self, query: DrugQuery, attempt: ModelAttempt, evidence_text: str) -> str:
        approved = ""
        if self.approved_drugs:
            approved = APPROVED_DRUGS_NOTE.format(names=", ".join(self.approved_drugs))
        if attempt.use_evidence:
            return VERIFY_WITH_EVIDENCE.format(query=query.describe(), evidence=evidence_text, approved_drugs=approved)
        return VERIFY_KNOWLEDGE_ONLY.format(query=query.describe(), approved_drugs=approved)

    async def verify(self, query: DrugQuery) -> VerificationVerdict:
        if query.is_empty():
            return VerificationVerdict(
                is_suspect=True,
                reason=MISSING_IDENTIFIER_REASON,
                drug_name="N/A",
                manufacturer="N/A",
            )

        code = query.lookup_code()
        evidence = await gather_evidence(self.lookups, code) if code else []
        evidence_text = render_evidence(evidence)

        for attempt in self.attempts:
            provider = attempt.provider
            prompt = self.render_prompt(query, attempt, evidence_text)
            try:
                output = await provider.generate_verdict(VERIFIER, prompt)
            except ModelInvocationFailed as e:
                logger.warning("%s verification failed, trying next model: %s", provider.name, e)
                continue
            except Exception:
                logger.exception("%s raised unexpectedly, trying next model", provider.name)
                continue

            if not is_identified(output.drug_name):
                logger.warning("%s could not identify the drug, trying next model", provider.name)
                continue

            verdict = VerificationVerdict(
                **output.model_dump(),
                source_model=provider.name,
                evidence=evidence,
            )
            logger.info("Verified %r with %s: suspect=%s", query.primary_identifier(), provider.name, verdict.is_suspect)
            return apply_rules(verdict, self.approved_drugs)

        logger.error("All %d model attempts failed for %r", len(self.attempts), query.primary_identifier())
        return failsafe_verdict(evidence)
