from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from .. import grade_service
from ..api_models import GradeCreateRequest, PublicProfile
from ..container import AppContainer
from ..session_guard import require_api_user


def register_grade_routes(router: APIRouter, container: AppContainer) -> None:
    documents = container.documents

    @router.get("/api/grades")
    def api_grades(user: PublicProfile = Depends(require_api_user)):
        return [
            g.model_dump(mode="json")
            for g in grade_service.list_grades(user.username, documents=documents)
        ]

    @router.post("/api/grades")
    def api_grades_create(req: GradeCreateRequest, user: PublicProfile = Depends(require_api_user)):
        grade = grade_service.add_grade(user.username, req, documents=documents)
        return JSONResponse(content=grade.model_dump(mode="json"), status_code=201)

    @router.delete("/api/grades/{grade_id}")
    def api_grades_delete(grade_id: str, user: PublicProfile = Depends(require_api_user)):
        grade_service.delete_grade(user.username, grade_id, documents=documents)
        return Response(status_code=204)
