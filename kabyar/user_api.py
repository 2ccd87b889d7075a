"""
User profile and credit endpoints
"""

from fastapi import APIRouter, Depends

from .auth import Session, require_session
from .helpers import request_stage_log
from .schemas import CreditRewardRequest, ProfileUpdate
from .services.credits import CreditLedger, get_credit_ledger
from .services.profiles import ProfileStore, get_profile_store

router = APIRouter(prefix="/api/user")


@router.get("/profile")
async def get_profile(
    session: Session = Depends(require_session),
    profiles: ProfileStore = Depends(get_profile_store),
):
    return {"user": profiles.get(session.user_id).to_dict()}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    session: Session = Depends(require_session),
    profiles: ProfileStore = Depends(get_profile_store),
):
    profile = profiles.update(session.user_id, name=body.name, ai_provider=body.ai_provider)
    request_stage_log("profile_updated", "Profile updated", ai_provider=profile.ai_provider)
    return {
        "message": "Profile updated successfully",
        "user": profile.to_dict(),
    }


@router.get("/credits")
async def get_credits(
    session: Session = Depends(require_session),
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    return ledger.get_balance(session.user_id).to_dict(ledger.daily_credits)


@router.post("/credits/reward")
async def reward_credits(
    body: CreditRewardRequest,
    session: Session = Depends(require_session),
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    """Top up after a completed rewarded ad; the amount is set server side"""
    balance = ledger.reward(session.user_id)
    request_stage_log("credits_rewarded", "Rewarded credits granted", source=body.source)
    return {"success": True, **balance.to_dict(ledger.daily_credits)}
