from __future__ import annotations

from flask import Flask

from ..common.web import api_view, body, reply
from ..container import Container, DeviceSession
from ..presentation.dashboard import build_dashboard


def register(app: Flask, container: Container) -> None:
    view = api_view(container)

    @app.route("/api/dashboard", methods=["GET"], endpoint="api_dashboard")
    @view
    def dashboard(dev: DeviceSession):
        dev.session.require_user()
        data = build_dashboard(dev.session, dev.directory_service, dev.tracker, dev.presenter, dev.evaluator)
        return reply(data)

    @app.route("/api/sites", methods=["POST"], endpoint="api_create_site")
    @view
    def create_site(dev: DeviceSession):
        site = dev.directory_service.create_site(body().get("name"))
        return reply({"site": {"id": site.site_id, "name": site.name, "lat": site.lat, "lng": site.lng}}, 201)

    @app.route("/api/sites/<site_id>/relocate", methods=["POST"], endpoint="api_relocate_site")
    @view
    def relocate_site(dev: DeviceSession, site_id: str):
        site = dev.directory_service.update_site_location(site_id)
        return reply({"site": {"id": site.site_id, "name": site.name, "lat": site.lat, "lng": site.lng}})

    @app.route("/api/employees", methods=["POST"], endpoint="api_register_employee")
    @view
    def register_employee(dev: DeviceSession):
        data = body()
        user = dev.directory_service.register_employee(
            username=data.get("username"),
            contact=data.get("contact"),
            site_id=data.get("site_id"),
            passcode=data.get("passcode"),
        )
        return reply({"username": user.username, "site_id": user.assigned_site_id})

    @app.route("/api/employees/<username>", methods=["DELETE"], endpoint="api_remove_employee")
    @view
    def remove_employee(dev: DeviceSession, username: str):
        dev.directory_service.remove_employee(username)
        return reply({"message": "Employee removed"})

    @app.route("/api/employees/<username>/history", methods=["GET"], endpoint="api_employee_history")
    @view
    def employee_history(dev: DeviceSession, username: str):
        points = dev.directory_service.employee_history(username)
        return reply(
            {
                "username": username.lower(),
                "history": [
                    {
                        "lat": p.lat,
                        "lng": p.lng,
                        "time": p.time.isoformat(),
                        "site_id": p.site_id,
                        "legacy_time": p.legacy_time,
                    }
                    for p in points
                ],
            }
        )
