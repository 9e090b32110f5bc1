from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.deps import get_chat_assistant
from api.security import get_current_user
from db.models import User
from services.chat import ChatAssistant, ChatMessage

router = APIRouter(prefix="/api/chat", tags=["chat"])


class ChatRequest(BaseModel):
    history: list[ChatMessage] = []
    message: str = Field(min_length=1)


class ChatResponse(BaseModel):
    response: str


@router.post("/", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    current_user: User = Depends(get_current_user),
    assistant: ChatAssistant = Depends(get_chat_assistant),
):
    """
    Ask the assistant about a drug. Mention an NDC or GTIN to have it checked
    against the databases first.
    """
    return {"response": await assistant.reply(body.history, body.message)}
