from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import Optional

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.middleware.rate_limit import rate_limit
from storefront.models.models import Profile
from storefront.schemas.schemas import PaymentOrderRequest, PaymentVerifyRequest
from storefront.services.payment_service import PaymentService

# Router
router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/create-order", dependencies=[Depends(rate_limit("checkout"))])
def create_payment_order(
    payload: PaymentOrderRequest,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": PaymentService(db).create_gateway_order(user, payload.order_id)}


@router.post("/verify")
def verify_payment(
    payload: PaymentVerifyRequest,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": PaymentService(db).verify_payment(user, payload)}


@router.get("/payment/{payment_id}")
def get_payment(payment_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"data": PaymentService(db).get_payment(user, payment_id)}


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    # Signature covers the raw body, so read it before any parsing
    body = await request.body()
    # Database and SMTP work is blocking
    return await run_in_threadpool(PaymentService(db).handle_webhook, body, x_razorpay_signature)
