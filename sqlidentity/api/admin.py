# sqlidentity/api/admin.py
from fastapi import APIRouter, Depends, HTTPException

from sqlidentity.api.deps import get_policy
from sqlidentity.core.policy import IdentityPolicy

# Sin autenticación e ids secuenciales: sólo se monta con ADMIN_ROUTES=true (desarrollo)
router = APIRouter()


@router.get("/{identity_id}")
async def detail_identity(identity_id: int, policy: IdentityPolicy = Depends(get_policy)):
    r = await policy.lookup_id(identity_id)
    if not r:
        raise HTTPException(status_code=404, detail="identity not found")
    return {
        "id": r.id,
        "userid": r.userid,
        "ip": r.ip,
        "useragent": r.useragent,
        "created": r.created.isoformat(),
        "modified": r.modified.isoformat(),
    }


@router.delete("/{identity_id}")
async def revoke_identity(identity_id: int, policy: IdentityPolicy = Depends(get_policy)):
    if not await policy.revoke(identity_id):
        raise HTTPException(status_code=404, detail="identity not found")
    return {"ok": True, "id": identity_id, "status": "revoked"}
