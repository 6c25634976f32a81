"""
Portal authentication routes.
Login returns a signed session token for the Authorization: Bearer header.
"""
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from portal.api.deps import get_current_user, session_token
from portal.db.session import get_db
from portal.models.user import User
from portal.schemas.users import StudentSignup, UserOut
from portal.services.identity.service import IdentityService

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut


@router.post("/login", response_model=Token)
def login(body: LoginRequest = Body(...), db: Session = Depends(get_db)):
    user, token = IdentityService(db).authenticate(body.email, body.password)
    return {"access_token": token, "token_type": "bearer", "user": UserOut.model_validate(user)}


@router.post("/register", response_model=Token, status_code=201)
def register(body: StudentSignup = Body(...), db: Session = Depends(get_db)):
    """Student self sign-up; signs the new student in."""
    service = IdentityService(db)
    service.register(body)
    user, token = service.authenticate(body.email, body.password)
    return {"access_token": token, "token_type": "bearer", "user": UserOut.model_validate(user)}


@router.post("/logout")
def logout(token: str | None = Depends(session_token), db: Session = Depends(get_db)):
    IdentityService(db).logout(token)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user
