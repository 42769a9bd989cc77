# app/api/v1/routes/trusted_ip_route.py

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.exceptions import ValidationError
from app.db.models.account_model import Account
from app.db.mongodb import get_database
from app.schemas.trusted_ip_schema import ManageTrustedIPsRequest, TrustedIPsResponse
from app.services.session_service import get_current_account
from app.services.trusted_ip_service import TrustedIPService
from app.utils.ip_utils import get_client_ip

router = APIRouter(prefix="/trusted-ips", tags=["Trusted IPs"])


@router.get("", response_model=TrustedIPsResponse)
async def list_trusted_ips(
    request: Request,
    account: Account = Depends(get_current_account),
):
    """
    Trusted IPs and auto-login setting of the signed-in account.
    """
    return TrustedIPService.list_trusted_ips(account, get_client_ip(request))


@router.post("")
async def manage_trusted_ips(
    payload: ManageTrustedIPsRequest,
    account: Account = Depends(get_current_account),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    action = payload.action

    if action == "toggle_auto_login":
        if payload.autoLoginEnabled is None:
            raise ValidationError("autoLoginEnabled must be a boolean")
        updated = await TrustedIPService.set_auto_login(db, account.id, payload.autoLoginEnabled)
        return {
            "message": f"Auto-login {'enabled' if updated.auto_login_enabled else 'disabled'}",
            "autoLoginEnabled": updated.auto_login_enabled,
        }

    if action == "remove_ip":
        if not payload.ipId:
            raise ValidationError("IP ID is required")
        updated = await TrustedIPService.remove_ip(db, account.id, payload.ipId)
        return {
            "message": "Trusted IP removed successfully",
            "remainingCount": len(updated.trusted_ips),
        }

    if action == "clear_all_ips":
        removed = await TrustedIPService.clear_all(db, account.id)
        return {
            "message": f"All {removed} trusted IPs cleared",
            "removedCount": removed,
        }

    if action == "regenerate_magic_key":
        await TrustedIPService.regenerate_magic_key(db, account.id)
        return {"message": "Magic key regenerated. All existing magic links are now invalid."}

    raise ValidationError("Invalid action")
