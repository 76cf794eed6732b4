from fastapi import APIRouter, Depends, HTTPException

from src.auth.dependencies import require_profile
from src.profiles.schemas import Profile
from src.report.schemas import ReportData
from src.report.service import get_report

router = APIRouter()


@router.get("/report", response_model=ReportData)
async def get_parent_report(profile: Profile = Depends(require_profile)):
    if not profile.is_premium:
        raise HTTPException(status_code=403, detail={
            "message": "The parent dashboard is a Premium feature.",
            "premium_required": True,
        })
    return get_report(profile.uid)
