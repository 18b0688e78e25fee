from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_current_user
from app.models.user import User
from app.schemas.discount import DiscountCheck, DiscountCheckOut
from app.utils.discounts import evaluate

router = APIRouter(prefix="/discounts", tags=["Discounts"])


@router.post("/check", response_model=DiscountCheckOut)
def check_discount(
    data: DiscountCheck,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    evaluation = evaluate(db, data.code, datetime.now())

    if not evaluation.valid:
        return DiscountCheckOut(valid=False, message="Invalid or expired discount code")

    return DiscountCheckOut(
        valid=True,
        code=evaluation.code,
        percent=evaluation.percent,
        value=evaluation.value,
    )
