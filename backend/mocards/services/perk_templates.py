"""Perk templates: the perk set issued with every new card."""
import logging
from pathlib import Path

import yaml
from sqlalchemy.orm import Session

from mocards.config import get_settings
from mocards.errors import ConflictError, NotFoundError, ValidationError
from mocards.models.card import PerkTemplate

logger = logging.getLogger(__name__)

PERK_TYPES = (
    "consultation",
    "cleaning",
    "extraction",
    "fluoride",
    "whitening",
    "xray",
    "denture",
    "braces",
    "filling",
    "root_canal",
)


def validate_perk_type(perk_type: str) -> str:
    if perk_type not in PERK_TYPES:
        raise ValidationError(
            f"Unknown perk type '{perk_type}'. Must be one of: {', '.join(PERK_TYPES)}"
        )
    return perk_type


def load_perk_templates(db: Session, configs_dir: Path | None = None) -> list[PerkTemplate]:
    """Load perk templates from YAML files and upsert them by perk_type.

    Returns list of loaded/updated PerkTemplate objects.
    """
    if configs_dir is None:
        configs_dir = get_settings().perk_configs_dir
    if not configs_dir.exists():
        logger.warning(f"Perk configs directory not found: {configs_dir}")
        return []

    loaded = []
    for yaml_file in sorted(configs_dir.glob("*.yaml")):
        try:
            loaded.extend(_load_single_file(db, yaml_file))
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.error(f"Failed to load perk templates from {yaml_file}: {e}")

    db.commit()
    logger.info(f"Loaded {len(loaded)} perk templates")
    return loaded


def _load_single_file(db: Session, yaml_path: Path) -> list[PerkTemplate]:
    """Load the ``perks`` list of a single YAML file."""
    with open(yaml_path, "r") as f:
        data = yaml.safe_load(f) or {}

    entries = []
    for position, entry in enumerate(data.get("perks", [])):
        if not entry.get("perk_type"):
            logger.warning(f"Perk template missing perk_type in {yaml_path}")
            continue
        # A file with one bad perk type is rejected as a whole
        validate_perk_type(entry["perk_type"])
        entries.append((position, entry))

    templates = []
    for position, entry in entries:
        perk_type = entry["perk_type"]

        existing = db.query(PerkTemplate).filter(PerkTemplate.perk_type == perk_type).first()
        if existing:
            # Admin edits win over the seed file for everything but the name
            existing.perk_name = entry.get("perk_name", existing.perk_name)
            logger.debug(f"Kept perk template: {perk_type}")
            templates.append(existing)
            continue

        template = PerkTemplate(
            perk_type=perk_type,
            perk_name=entry.get("perk_name", perk_type.replace("_", " ").title()),
            perk_value=float(entry.get("perk_value", 0)),
            description=entry.get("description"),
            sort_order=entry.get("sort_order", position),
            is_active=1 if entry.get("is_active", True) else 0,
        )
        db.add(template)
        logger.debug(f"Created perk template: {perk_type}")
        templates.append(template)

    return templates


def get_active_templates(db: Session) -> list[PerkTemplate]:
    """Active templates in issue order."""
    return (
        db.query(PerkTemplate)
        .filter(PerkTemplate.is_active == 1)
        .order_by(PerkTemplate.sort_order.asc(), PerkTemplate.perk_type.asc())
        .all()
    )


def list_templates(db: Session, include_inactive: bool = False) -> list[PerkTemplate]:
    query = db.query(PerkTemplate)
    if not include_inactive:
        query = query.filter(PerkTemplate.is_active == 1)
    return query.order_by(PerkTemplate.sort_order.asc(), PerkTemplate.perk_type.asc()).all()


def create_template(
    db: Session,
    perk_type: str,
    perk_name: str,
    perk_value: float = 0.0,
    description: str | None = None,
    sort_order: int = 0,
) -> PerkTemplate:
    validate_perk_type(perk_type)
    if db.query(PerkTemplate).filter(PerkTemplate.perk_type == perk_type).first():
        raise ConflictError(f"Perk template '{perk_type}' already exists")
    if perk_value < 0:
        raise ValidationError("Perk value must not be negative")

    template = PerkTemplate(
        perk_type=perk_type,
        perk_name=perk_name,
        perk_value=perk_value,
        description=description,
        sort_order=sort_order,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info(f"Created perk template {perk_type}")
    return template


def update_template(db: Session, template_id: str, **changes) -> PerkTemplate:
    """Apply non-None changes; ``is_active`` toggles issuing for future cards."""
    template = db.query(PerkTemplate).filter(PerkTemplate.id == template_id).first()
    if not template:
        raise NotFoundError("Perk template not found")

    if changes.get("perk_value") is not None and changes["perk_value"] < 0:
        raise ValidationError("Perk value must not be negative")

    for field in ("perk_name", "perk_value", "description", "sort_order"):
        if changes.get(field) is not None:
            setattr(template, field, changes[field])
    if changes.get("is_active") is not None:
        template.is_active = 1 if changes["is_active"] else 0

    db.commit()
    db.refresh(template)
    return template


def deactivate_template(db: Session, template_id: str) -> PerkTemplate:
    """Stop issuing a perk; perks already on cards are untouched."""
    return update_template(db, template_id, is_active=False)
