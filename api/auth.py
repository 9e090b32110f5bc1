from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import Session

from api.security import create_access_token, get_current_user
from db.database import get_session
from db.models import PublicUser, User
from services.users import add_user, authenticate

router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignupRequest(BaseModel):
    fullname: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)


@router.post("/signup", status_code=201, response_model=PublicUser)
def signup(body: SignupRequest, session: Session = Depends(get_session)):
    """
    Create a staff account. Emails are unique regardless of case.
    """
    result = add_user(session, body.fullname, body.email, body.password)
    if not result.success:
        raise HTTPException(status_code=409, detail=result.message)
    return result.user


@router.post("/login")
def login(form: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    """
    Exchange email (sent as `username`) and password for a bearer token.
    """
    user = authenticate(session, form.username, form.password)
    if not user:
        raise HTTPException(status_code=401, detail="Incorrect email or password")

    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
        "user": user,
    }


@router.get("/me", response_model=PublicUser)
def read_me(current_user: User = Depends(get_current_user)):
    return PublicUser.model_validate(current_user)
