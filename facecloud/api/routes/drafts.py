"""Form draft endpoints, scoped to the browser session in ``X-Session-Id``."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..dependencies import get_current_user_id, get_draft_store
from ..schemas import DraftResponse, DraftSaveRequest, DraftSaveResponse
from ...wizards import WIZARDS
from ...workflow.drafts import DraftStore

router = APIRouter(dependencies=[Depends(get_current_user_id)])


def _known_form(form: str) -> str:
    if form not in WIZARDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown form '{form}'")
    return form


@router.get("/drafts/{form}", response_model=DraftResponse)
def get_draft(form: str, drafts: DraftStore = Depends(get_draft_store)) -> DraftResponse:
    draft = drafts.restore(_known_form(form))
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No draft saved")
    return DraftResponse(
        form=form,
        step_index=draft.step_index,
        fields=draft.fields,
        attachments=draft.attachments,
        saved_at=draft.saved_at,
    )


@router.put("/drafts/{form}", response_model=DraftSaveResponse, status_code=status.HTTP_202_ACCEPTED)
def save_draft(
    form: str,
    payload: DraftSaveRequest,
    drafts: DraftStore = Depends(get_draft_store),
) -> DraftSaveResponse:
    """Schedule a debounced write. Rapid successive saves collapse into the last one."""

    saved = drafts.save(_known_form(form), payload.fields, payload.step_index)
    return DraftSaveResponse(form=form, saved=saved)


@router.delete("/drafts/{form}", status_code=status.HTTP_204_NO_CONTENT)
def discard_draft(form: str, drafts: DraftStore = Depends(get_draft_store)) -> Response:
    drafts.clear(_known_form(form))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
