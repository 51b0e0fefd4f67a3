from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from salesboard.api.deps import get_live_channel, require_company_member, require_roles
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.live.channel import LiveChannel
from salesboard.models.user import ROLE_ADMIN
from salesboard.schemas.sales import SaleCreateRequest, SaleOut
from salesboard.services import sale_service

router = APIRouter(prefix="/sales", tags=["sales"])


@router.post("", status_code=201)
def record_sale(
    request: Request,
    body: SaleCreateRequest,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
    channel: LiveChannel = Depends(get_live_channel),
) -> dict:
    recorded = sale_service.record_sale(db, actor=user, body=body)
    # Runs after the response is sent and only when the commit succeeded.
    background_tasks.add_task(channel.broadcast, recorded.event.company_id, recorded.event)
    data = SaleOut.model_validate(recorded.sale).model_dump(mode="json")
    data["seller_name"] = recorded.seller.display_name
    return envelope(request, data)


@router.delete("/{sale_id}")
def delete_sale(
    request: Request,
    sale_id: str,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    sale_service.delete_sale(db, actor=user, sale_id=sale_id)
    return envelope(request, {"id": sale_id, "deleted": True})
