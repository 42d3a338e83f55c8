from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import RedirectResponse

from .. import account_service
from ..container import AppContainer
from ..flags import LoginError, SuccessFlag, with_flag
from ..rate_limit import client_address
from ..session_guard import current_user, ensure_csrf_token, login_session, logout_session


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=303)


def register_auth_routes(router: APIRouter, container: AppContainer) -> None:
    @router.get("/auth/session")
    def auth_session(request: Request):
        user = current_user(request)
        return {
            "csrf_token": ensure_csrf_token(request.session),
            "user": user.model_dump() if user else None,
        }

    @router.post("/auth/register")
    def auth_register(
        prename: Optional[str] = Form(None),
        lastname: Optional[str] = Form(None),
        username: Optional[str] = Form(None),
        password_one: Optional[str] = Form(None, alias="passwordone"),
        password_two: Optional[str] = Form(None, alias="passwordtwo"),
    ):
        failure = account_service.register(
            prename=prename,
            lastname=lastname,
            username=username,
            password_one=password_one,
            password_two=password_two,
            deps=container.account_deps(),
        )
        if failure is not None:
            return _redirect(with_flag("/auth/register", error=failure))
        return _redirect(with_flag("/auth/login", success=SuccessFlag.CREATED))

    @router.post("/auth/login")
    def auth_login(
        request: Request,
        username: Optional[str] = Form(None),
        password: Optional[str] = Form(None),
    ):
        limits = container.config.rate_limit
        client = client_address(
            request,
            trust_forwarded_for=limits.trust_x_forwarded_for,
            trusted_proxy_ips=limits.trusted_proxy_ips,
        )
        result = account_service.login(
            username=username,
            password=password,
            client=client,
            deps=container.account_deps(),
        )
        if isinstance(result, LoginError):
            return _redirect(with_flag("/auth/login", error=result))
        login_session(request, result)
        return _redirect(with_flag("/subjects", success=SuccessFlag.LOGIN))

    @router.post("/auth/logout")
    def auth_logout(request: Request):
        logout_session(request)
        return _redirect(with_flag("/auth/login", success=SuccessFlag.LOGOUT))
