# backend/app/routers/otp.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..responses import envelope
from ..schemas import OtpRequestIn, OtpVerifyIn
from ..services.otp_service import request_otp, resend_otp, verify_otp
from ..services.ownership import must_get_user_by_email

router = APIRouter(prefix="/otp", tags=["otp"])


@router.post("/request")
def request_code(payload: OtpRequestIn, db: Session = Depends(get_db)):
    user = must_get_user_by_email(db, email=payload.user_email)
    sent = request_otp(db, user)
    msg = "OTP sent successfully" if sent else "An OTP has already been sent. Please check your email."
    return envelope(msg)


@router.post("/resend")
def resend(payload: OtpRequestIn, db: Session = Depends(get_db)):
    user = must_get_user_by_email(db, email=payload.user_email)
    resend_otp(db, user)
    return envelope("OTP resent successfully")


@router.post("/verify")
def verify(payload: OtpVerifyIn, db: Session = Depends(get_db)):
    user = must_get_user_by_email(db, email=payload.user_email)
    token = verify_otp(db, user, payload.otp_code)
    return envelope("OTP verified successfully", {"token": token, "userType": user.user_type, "isVerified": True})
