from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from applyhub.config import get_settings
from applyhub.database import get_db
from applyhub.auth import (
    create_magic_link_token,
    create_session,
    delete_session,
    get_or_create_user,
    validate_session,
    verify_magic_link_token,
)
from applyhub.schemas.user import (
    MagicLinkRequest,
    MagicLinkResponse,
    SessionInfoResponse,
    UserResponse,
    VerifyTokenRequest,
    VerifyTokenResponse,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])
settings = get_settings()


@router.post("/start", response_model=MagicLinkResponse)
def start(body: MagicLinkRequest, db: Session = Depends(get_db)):
    """Create a magic link for the email. The link is returned directly (no email delivery)."""
    token = create_magic_link_token(db, body.email)
    magic_link = f"{settings.app_url}/auth/verify?token={token}"
    return MagicLinkResponse(magic_link=magic_link)


@router.post("/verify", response_model=VerifyTokenResponse)
def verify(
    body: VerifyTokenRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Consume a magic link token, get or create the user, start a cookie session."""
    email = verify_magic_link_token(db, body.token)
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = get_or_create_user(db, email)
    ip_address = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    user_agent = request.headers.get("user-agent")
    session_token = create_session(db, user.id, ip_address, user_agent)

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_token,
        max_age=settings.session_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )
    return VerifyTokenResponse()


@router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        delete_session(db, token)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return {"success": True}


@router.get("/session", response_model=SessionInfoResponse)
def session_info(request: Request, db: Session = Depends(get_db)):
    """Session check for the frontend. Never 401s; reports authenticated=false instead."""
    token = request.cookies.get(settings.session_cookie_name)
    user = validate_session(db, token) if token else None
    if not user:
        return SessionInfoResponse(authenticated=False)
    return SessionInfoResponse(authenticated=True, user=UserResponse.model_validate(user))
