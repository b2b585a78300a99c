from __future__ import annotations

from flask import Flask, session

from ..common.web import api_view, body, reply
from ..container import Container, DeviceSession
from ..core.enums import LoginOutcome
from .service import LoginResult


def _login_payload(result: LoginResult) -> dict:
    return {
        "outcome": result.outcome.value,
        "username": result.username,
        "role": result.role.value,
        "company_id": result.company_id,
        "message": result.message,
    }


def register(app: Flask, container: Container) -> None:
    view = api_view(container)

    def remember(result: LoginResult) -> None:
        if result.outcome == LoginOutcome.SUCCESS:
            session["username"] = result.username

    @app.route("/api/auth/login", methods=["POST"], endpoint="api_login")
    @view
    def login(dev: DeviceSession):
        data = body()
        result = dev.auth_service.login(
            username=data.get("username"),
            company_id=data.get("company_id"),
            passcode=data.get("passcode"),
        )
        remember(result)
        status = 202 if result.outcome == LoginOutcome.AWAITING_LOCATION else 200
        return reply(_login_payload(result), status)

    @app.route("/api/auth/verify", methods=["POST"], endpoint="api_verify")
    @view
    def verify(dev: DeviceSession):
        result = dev.auth_service.verify_account(body().get("code"))
        remember(result)
        status = 202 if result.outcome == LoginOutcome.AWAITING_LOCATION else 200
        return reply(_login_payload(result), status)

    @app.route("/api/auth/logout", methods=["POST"], endpoint="api_logout")
    @view
    def logout(dev: DeviceSession):
        dev.auth_service.logout()
        session.pop("username", None)
        container.drop_device(dev.device_id)
        return reply({"message": "Logged out"})

    @app.route("/api/auth/register-company", methods=["POST"], endpoint="api_register_company")
    @view
    def register_company(dev: DeviceSession):
        data = body()
        reg = dev.auth_service.register_company(
            company_name=data.get("company_name"),
            manager_username=data.get("username"),
            passcode=data.get("passcode"),
        )
        return reply({"username": reg.username, "company_id": reg.company_id}, 201)

    @app.route("/api/auth/register-employee", methods=["POST"], endpoint="api_register_employee_self")
    @view
    def register_employee_self(dev: DeviceSession):
        data = body()
        reg = dev.auth_service.register_employee_self(
            username=data.get("username"),
            email=data.get("email"),
            phone=data.get("phone"),
            passcode=data.get("passcode"),
        )
        return reply({"username": reg.username}, 201)

    @app.route("/api/session", methods=["GET"], endpoint="api_session")
    @view
    def current_session(dev: DeviceSession):
        user = dev.session.current_user()
        return reply(
            {
                "device_id": dev.device_id,
                "pending_verification": dev.session.pending_username,
                "user": None
                if user is None
                else {"username": user.username, "role": user.role.value, "company_id": user.company_id},
            }
        )
