from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse

from .. import subject_service
from ..api_models import PublicProfile, SubjectSaveRequest
from ..container import AppContainer
from ..errors import NotFoundError, ValidationError
from ..flags import SubjectError, SuccessFlag, parse_error_flag, parse_success_flag, with_flag
from ..session_guard import require_api_user, require_page_user


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=303)


def register_subject_routes(router: APIRouter, container: AppContainer) -> None:
    documents = container.documents

    @router.get("/api/subjects")
    def api_subjects(user: PublicProfile = Depends(require_api_user)):
        return [
            s.model_dump(mode="json", by_alias=True)
            for s in subject_service.list_subjects(user.username, documents=documents)
        ]

    @router.get("/subjects")
    def subjects_page(request: Request, user: PublicProfile = Depends(require_page_user)):
        document = documents.load(user.username)
        return {
            "current_user": user.model_dump(),
            "subjects": document.to_json()["subjects"],
            "error": parse_error_flag(request.query_params.get("error")),
            "success": parse_success_flag(request.query_params.get("success")),
        }

    @router.post("/subjects/add")
    def subjects_add(
        name: Optional[str] = Form(None),
        user: PublicProfile = Depends(require_page_user),
    ):
        try:
            subject_service.add_subject(user.username, name, documents=documents)
        except ValidationError:
            return _redirect(with_flag("/subjects", error=SubjectError.NO_NAME))
        return _redirect(with_flag("/subjects", success=SuccessFlag.CREATED))

    @router.post("/subjects/delete")
    def subjects_delete(
        id: Optional[str] = Form(None),
        user: PublicProfile = Depends(require_page_user),
    ):
        try:
            subject_service.delete_subject(user.username, id, documents=documents)
        except ValidationError:
            return _redirect(with_flag("/subjects", error=SubjectError.NO_ID))
        except NotFoundError:
            return _redirect(with_flag(f"/subjects/{quote(id.strip(), safe='')}", error=SubjectError.NOT_FOUND))
        return _redirect(with_flag("/subjects", success=SuccessFlag.DELETED))

    @router.get("/subjects/{subject_id}")
    def subject_page(subject_id: str, user: PublicProfile = Depends(require_page_user)):
        document = documents.load(user.username)
        subject = document.find_subject(subject_id)
        if subject is None:
            return _redirect(with_flag("/subjects", error=SubjectError.NOT_FOUND))
        return {
            "current_user": user.model_dump(),
            "subject": subject.model_dump(mode="json", by_alias=True),
            "average": subject_service.subject_average(document, subject),
        }

    @router.post("/subjects/{subject_id}/save")
    def subject_save(
        subject_id: str,
        payload: SubjectSaveRequest,
        user: PublicProfile = Depends(require_page_user),
    ):
        subject = subject_service.save_subject(user.username, subject_id, payload, documents=documents)
        return subject.model_dump(mode="json", by_alias=True)
