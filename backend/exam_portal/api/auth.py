from fastapi import APIRouter, Depends

from exam_portal.api.deps import get_credentials, require_admin
from exam_portal.schemas.auth import LoginIn, LoginOut, RegisterIn, UserOut
from exam_portal.schemas.base import Ack
from exam_portal.services.credentials import CredentialStore

router = APIRouter(tags=["auth"])

@router.post("/api/auth/register", response_model=Ack, status_code=201)
def register(payload: RegisterIn, store: CredentialStore = Depends(get_credentials)):
    store.create_user(payload.name, payload.email, payload.password, payload.role)
    return Ack(message="Registration successful")

@router.post("/api/auth/login", response_model=LoginOut)
def login(payload: LoginIn, store: CredentialStore = Depends(get_credentials)):
    user = store.verify_credentials(payload.email, payload.password)
    return LoginOut(username=user.name, email=user.email, user_id=user.id, role=user.role)

@router.get("/admin/users", response_model=list[UserOut], dependencies=[Depends(require_admin)])
def list_users(store: CredentialStore = Depends(get_credentials)):
    return store.list_users()
