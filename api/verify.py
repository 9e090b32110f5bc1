# internal imports
import logging
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

# external imports
from api.deps import get_orchestrator
from api.security import get_current_user
from db.database import get_session
from db.models import ScanRecord, User
from services.history import record_verdict
from services.orchestrator import VerificationOrchestrator
from services.schemas import DrugQuery, VerificationVerdict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/verify", tags=["verify"])


class VerifyResponse(BaseModel):
    verdict: VerificationVerdict
    scan: ScanRecord


@router.post("/", response_model=VerifyResponse)
async def verify_drug(
    query: DrugQuery,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """
    The main verification endpoint. Accepts any combination of identifiers.

    Args:
        query: drug_name, ndc, gtin, nafdac_number, barcode and/or free_text_query
        current_user: The signed-in staff member (injected)
        session: Database session (injected)
        orchestrator: Lookup + model chain (injected)

    Always answers with a verdict: an empty query or a total model failure comes back
    as a suspect verdict, and every outcome is written to the caller's scan history.
    """

    # 1. Gather evidence and run the model chain
    verdict = await orchestrator.verify(query)

    # 2. Record the outcome, failures included
    scan = record_verdict(session, current_user.id, query, verdict)

    return {"verdict": verdict, "scan": scan}
