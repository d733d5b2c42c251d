"""
Router for CRM integration endpoints.

Handles:
- Listing CRM accounts
- Selecting the account for the current result
- Sending the current result to the CRM webhook
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

# Handle both package imports and standalone imports
try:
    from ..dependencies import get_session
    from ..models import Account, CrmSendResponse, SelectAccountRequest, SessionResponse
    from ..services.crm_bridge import CRMBridge, get_crm_bridge
    from ..session import ExtractionSession
except ImportError:
    from dependencies import get_session
    from models import Account, CrmSendResponse, SelectAccountRequest, SessionResponse
    from services.crm_bridge import CRMBridge, get_crm_bridge
    from session import ExtractionSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}", tags=["crm"])


@router.get("/accounts", response_model=list[Account])
async def list_accounts(
    refresh: bool = False,
    session: ExtractionSession = Depends(get_session),
    bridge: CRMBridge = Depends(get_crm_bridge),
) -> list[Account]:
    """
    Return the CRM accounts.

    The list is fetched once per session; pass refresh=true to fetch it
    again. A failed fetch yields an empty list.
    """
    return await session.load_accounts(bridge, refresh=refresh)


@router.put("/account", response_model=SessionResponse)
async def select_account(
    request: SelectAccountRequest,
    session: ExtractionSession = Depends(get_session),
) -> SessionResponse:
    """Select (or clear) the account the result will be sent to."""
    session.select_account(request.account_id)
    return session.to_response()


@router.post("/crm/send", response_model=CrmSendResponse)
async def send_to_crm(
    session: ExtractionSession = Depends(get_session),
    bridge: CRMBridge = Depends(get_crm_bridge),
) -> CrmSendResponse:
    """
    Send the current result to the selected account.

    Rejected with 409 when no account is selected, there is no successful
    result, the result was already sent, or a send is in flight. A failed
    send sets the status to "error" and can be retried.
    """
    if not session.can_send_to_crm:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Nothing to send: select an account and run a successful extraction first",
        )

    crm_status = await session.send_to_crm(bridge)
    return CrmSendResponse(status=crm_status, account_id=session.selected_account_id)
