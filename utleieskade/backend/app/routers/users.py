# backend/app/routers/users.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.statuses import UserType
from ..responses import envelope
from ..schemas import LoginIn, PasswordResetIn, ProfileUpdateIn, SignupIn
from ..serializers import user_out
from ..services.auth_service import hash_password
from ..services.ownership import must_get_user
from ..services.user_service import (
    create_user,
    ensure_password_length,
    issue_token,
    login,
    reset_password,
    update_profile,
)

router = APIRouter(prefix="/users", tags=["users"])

LOGIN_TYPES = {UserType.tenant.value, UserType.landlord.value, UserType.inspector.value, UserType.admin.value}


@router.post("/signup", status_code=201)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    user = create_user(
        db,
        prefix="USER",
        user_type=payload.user_type,
        first_name=payload.user_first_name,
        last_name=payload.user_last_name,
        email=payload.user_email,
        password_hash=hash_password(ensure_password_length(payload.user_password)),
        phone=payload.user_phone,
        city=payload.user_city,
        postcode=payload.user_postcode,
        address=payload.user_address,
        country=payload.user_country,
        gender=payload.user_gender,
    )
    token = issue_token(user)
    return envelope("User created successfully", {"token": token["token"], "userType": token["userType"]})


@router.post("/login")
def login_any(payload: LoginIn, db: Session = Depends(get_db)):
    user = login(db, email=payload.user_email, password=payload.user_password, as_type=None)
    return envelope("Login successful", issue_token(user))


@router.post("/login/{user_type}")
def login_as(user_type: str, payload: LoginIn, db: Session = Depends(get_db)):
    as_type = user_type.strip().lower()
    if as_type not in LOGIN_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid user type: {user_type}")
    user = login(db, email=payload.user_email, password=payload.user_password, as_type=as_type)
    return envelope("Login successful", issue_token(user))


@router.get("/profile")
def get_profile(p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    user = must_get_user(db, user_id=p.user_id)
    return envelope("User profile fetched successfully", user_out(user))


@router.put("/profile")
def put_profile(payload: ProfileUpdateIn, p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    user = update_profile(db, must_get_user(db, user_id=p.user_id), payload)
    return envelope("Profile updated successfully", user_out(user))


@router.put("/password")
def put_password(payload: PasswordResetIn, p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    user = must_get_user(db, user_id=p.user_id)
    reset_password(db, user, new_password=payload.user_password, elevated=p.elevated)
    return envelope("Password updated successfully")
