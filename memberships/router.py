from fastapi import APIRouter

from memberships.tiers import TIERS

router = APIRouter(prefix="/api/memberships", tags=["Memberships"])


@router.get("/tiers")
def list_tiers():
    return {"ok": True, "tiers": [tier.as_dict() for tier in TIERS.values()]}
