import pytest

from mocards.errors import ConflictError, NotFoundError, ValidationError
from mocards.models.card import PerkTemplate
from mocards.services import card_lifecycle, perk_templates


def test_default_templates_loaded_from_yaml(db):
    active = perk_templates.get_active_templates(db)
    everything = perk_templates.list_templates(db, include_inactive=True)

    assert [t.perk_type for t in active] == [
        "consultation",
        "cleaning",
        "extraction",
        "fluoride",
        "whitening",
        "xray",
        "denture",
        "braces",
    ]
    assert len(everything) == 10


def test_reloading_keeps_admin_changes(db):
    template = db.query(PerkTemplate).filter(PerkTemplate.perk_type == "cleaning").one()
    perk_templates.update_template(db, template.id, perk_value=950.0)

    perk_templates.load_perk_templates(db)

    db.refresh(template)
    assert template.perk_value == 950.0
    assert db.query(PerkTemplate).count() == 10


def test_load_from_custom_directory(session_factory, tmp_path):
    (tmp_path / "clinic.yaml").write_text(
        "perks:\n"
        "  - perk_type: consultation\n"
        "    perk_name: Consultation\n"
        "    perk_value: 300\n"
        "  - perk_type: unknown_perk\n"
        "  - perk_name: Missing type\n"
    )
    db = session_factory()
    try:
        loaded = perk_templates.load_perk_templates(db, configs_dir=tmp_path)
        assert loaded == []
        assert db.query(PerkTemplate).count() == 0
    finally:
        db.close()


def test_create_template(session_factory, tmp_path):
    db = session_factory()
    try:
        template = perk_templates.create_template(db, "filling", "Tooth Filling", perk_value=1200)
        assert template.is_active == 1

        with pytest.raises(ConflictError):
            perk_templates.create_template(db, "filling", "Tooth Filling")
        with pytest.raises(ValidationError):
            perk_templates.create_template(db, "massage", "Massage")
        with pytest.raises(ValidationError):
            perk_templates.create_template(db, "xray", "X-Ray", perk_value=-1)
    finally:
        db.close()


def test_deactivated_template_not_issued_to_new_cards(db, admin):
    _, before = card_lifecycle.generate_batch(db, admin.id, 1)
    whitening = db.query(PerkTemplate).filter(PerkTemplate.perk_type == "whitening").one()

    perk_templates.deactivate_template(db, whitening.id)
    _, after = card_lifecycle.generate_batch(db, admin.id, 1)

    assert len(before[0].perks) == 8
    assert len(after[0].perks) == 7
    assert "whitening" not in {p.perk_type for p in after[0].perks}


def test_update_unknown_template(db):
    with pytest.raises(NotFoundError):
        perk_templates.update_template(db, "missing", perk_name="Nothing")
