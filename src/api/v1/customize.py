"""
Customize endpoints - staged setting edits, preview bootstrap and publish.

Every response uses the AJAX envelope ``{"success": bool, "data": ...}``;
failures are raised as CustomizeError and shaped by the application's
exception handler.
"""

from fastapi import APIRouter

from src.api.deps import Manager
from src.schemas.customize import (
    ActiveTreeData,
    AjaxResponse,
    NoncesData,
    SaveData,
    TreeNodeResponse,
    UpdateTransactionData,
)

router = APIRouter()


@router.api_route("/transactions/update", methods=["GET", "POST"], response_model=AjaxResponse)
async def update_transaction(manager: Manager):
    """Stage a batch of values into the customize transaction."""
    result = await manager.update_transaction()
    return AjaxResponse(success=True, data=UpdateTransactionData(**result))


@router.api_route("/save", methods=["GET", "POST"], response_model=AjaxResponse)
async def save(manager: Manager):
    """Publish the transaction (or submit it for review)."""
    result = await manager.save()
    return AjaxResponse(success=True, data=SaveData(**result))


@router.get("/preview", response_model=AjaxResponse)
async def preview_settings(manager: Manager):
    """Bootstrap data for the preview frame; values reflect staged edits."""
    return AjaxResponse(success=True, data=manager.preview_settings())


@router.get("/tree", response_model=AjaxResponse)
async def active_tree(manager: Manager):
    """The panels, sections and controls the actor may use, in display order."""
    tree = manager.get_active_tree()
    data = ActiveTreeData(
        containers=[TreeNodeResponse.model_validate(node) for node in tree.to_list()],
        panels=list(tree.panel_ids),
        sections=list(tree.section_ids),
        controls=list(tree.control_ids),
        control_types=list(manager.containers.control_types),
    )
    return AjaxResponse(success=True, data=data)


@router.get("/nonces", response_model=AjaxResponse)
async def nonces(manager: Manager):
    """Fresh update/save nonces for the previewed theme."""
    return AjaxResponse(success=True, data=NoncesData(**manager.get_nonces()))
