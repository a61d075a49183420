"""Perk template API endpoints (administrators)."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from mocards.api.deps import Actor, get_db, require_admin
from mocards.schemas.perk import PerkTemplateCreate, PerkTemplateResponse, PerkTemplateUpdate
from mocards.services import perk_templates

router = APIRouter(prefix="/perk-templates", tags=["perk-templates"])


@router.get("", response_model=list[PerkTemplateResponse])
def list_perk_templates(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """List perk templates in issue order."""
    return perk_templates.list_templates(db, include_inactive=include_inactive)


@router.post("", response_model=PerkTemplateResponse, status_code=status.HTTP_201_CREATED)
def create_perk_template(
    template_data: PerkTemplateCreate,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Add a perk issued with future cards."""
    return perk_templates.create_template(
        db,
        perk_type=template_data.perk_type,
        perk_name=template_data.perk_name,
        perk_value=template_data.perk_value,
        description=template_data.description,
        sort_order=template_data.sort_order,
    )


@router.patch("/{template_id}", response_model=PerkTemplateResponse)
def update_perk_template(
    template_id: str,
    template_data: PerkTemplateUpdate,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Update a perk template."""
    return perk_templates.update_template(db, template_id, **template_data.model_dump())


@router.delete("/{template_id}", response_model=PerkTemplateResponse)
def deactivate_perk_template(
    template_id: str,
    db: Session = Depends(get_db),
    admin: Actor = Depends(require_admin),
):
    """Stop issuing a perk with future cards."""
    return perk_templates.deactivate_template(db, template_id)
