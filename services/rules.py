"""
Deterministic checks applied to a verdict after the model has spoken.

These run regardless of which model answered:
- no identifying evidence anywhere means suspect
- an approved drug is not suspect unless a source reports it withdrawn

The orchestrator only accepts answers that name a drug, and an exhausted
chain ends in failsafe_verdict(), so within verify() the identification rule
never changes an outcome. It guards verdicts assembled anywhere else.
"""
from typing import Iterable

from db.models import ScanStatus
from services.schemas import VerificationVerdict, is_identified

NO_EVIDENCE_REASON = "The drug could not be identified by any data source or model, so it is treated as suspect."
APPROVED_REASON = "The drug is on the clinic's approved list and no source reports a recall or discontinuation."


def is_on_allow_list(drug_name: str, approved_drugs: Iterable[str]) -> bool:
    if not is_identified(drug_name):
        return False
    name = drug_name.lower()
    return any(approved.strip() and approved.strip().lower() in name for approved in approved_drugs)


def enforce_identification(verdict: VerificationVerdict) -> VerificationVerdict:
    if verdict.identified or any(result.found for result in verdict.evidence):
        return verdict
    if verdict.is_suspect:
        return verdict
    return verdict.model_copy(update={"is_suspect": True, "reason": f"{verdict.reason} {NO_EVIDENCE_REASON}".strip()})


def apply_allow_list(verdict: VerificationVerdict, approved_drugs: Iterable[str]) -> VerificationVerdict:
    if not verdict.is_suspect or not is_on_allow_list(verdict.drug_name, approved_drugs):
        return verdict
    if any(result.discontinued for result in verdict.evidence):
        return verdict
    return verdict.model_copy(update={"is_suspect": False, "reason": f"{verdict.reason} {APPROVED_REASON}".strip()})


def apply_rules(verdict: VerificationVerdict, approved_drugs: Iterable[str] = ()) -> VerificationVerdict:
    verdict = apply_allow_list(verdict, approved_drugs)
    return enforce_identification(verdict)


def scan_status(verdict: VerificationVerdict) -> ScanStatus:
    if not verdict.is_suspect:
        return ScanStatus.VERIFIED
    if verdict.identified:
        return ScanStatus.SUSPECT
    return ScanStatus.UNKNOWN
