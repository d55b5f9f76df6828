# sqlidentity/api/session.py
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from sqlidentity.api.deps import attach_token, bearer_token, client_info, get_policy, require_userid
from sqlidentity.core.policy import IdentityPolicy

router = APIRouter()


class LoginInput(BaseModel):
    # Se asume ya autenticado: aquí no se comprueban credenciales
    userid: str = Field(min_length=1)


@router.post("/login")
async def login(
    body: LoginInput,
    request: Request,
    response: Response,
    policy: IdentityPolicy = Depends(get_policy),
):
    ip, useragent = client_info(request)
    token = await policy.remember(body.userid, ip, useragent)
    attach_token(response, token)
    return {"ok": True, "userid": body.userid}


@router.get("/profile")
async def profile(userid: str = Depends(require_userid)):
    return {"userid": userid}


@router.post("/logout")
async def logout(
    userid: str = Depends(require_userid),
    token: str = Depends(bearer_token),
    policy: IdentityPolicy = Depends(get_policy),
):
    await policy.forget(token)
    return {"ok": True, "userid": userid}
