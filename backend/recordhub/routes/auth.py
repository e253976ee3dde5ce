"""
RecordHub Backend - Auth Route Handlers
========================================

What:  GET /api/auth/session reports whether the caller presented a
       credential and where: the `token` cookie or an
       `Authorization: Bearer <token>` header (the header the frontend
       helper builds). Tokens are not verified here.
"""

from fastapi import APIRouter, Request

from recordhub.schemas.record import SessionResponse

router = APIRouter(tags=["Auth"])

TOKEN_COOKIE = "token"


@router.get("/session", response_model=SessionResponse, summary="Credential presence check")
async def session(request: Request) -> SessionResponse:
    if request.cookies.get(TOKEN_COOKIE):
        return SessionResponse(authenticated=True, source="cookie")

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return SessionResponse(authenticated=True, source="header")

    return SessionResponse(authenticated=False)
