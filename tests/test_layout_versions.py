import pytest
from sqlalchemy.exc import SQLAlchemyError

from layout_studio.db.enums import BlueprintStatusEnum, LayoutVersionStateEnum
from layout_studio.db.models import Page
from layout_studio.db.repositories import LayoutVersionsRepository
from layout_studio.errors import (
    DocumentMismatchError,
    LayoutValidationError,
    NotFoundError,
    OwnershipError,
    PublishConsistencyError,
)
from layout_studio.services.layout_mapper import serialize_for_persistence
from layout_studio.schemas.validation import validate_layout
from layout_studio.services.layout_versions import (
    list_versions,
    load_editor_layout,
    publish_layout,
    resolve_live_page,
    save_layout,
)

OWNER_ID = "user-owner"


def _states(session, blueprint_id):
    versions = LayoutVersionsRepository(session).list_for_blueprint(blueprint_id=blueprint_id)
    return {version.id: version.state for version in versions}


def test_save_creates_blueprint_and_draft_version(db_session, page, make_layout, clock):
    result = save_layout(
        session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID, clock=clock
    )

    assert result.blueprint.slug == "home"
    assert result.blueprint.name == "Acme Home"
    assert result.blueprint.status == BlueprintStatusEnum.draft
    assert result.version.revision == 1
    assert result.version.state == LayoutVersionStateEnum.draft
    assert result.version.created_by == OWNER_ID
    assert result.version.layout["id"] == "layout-1"
    assert result.version.summary["summary"] == "Layout with 1 sections"
    assert result.version.summary["sections"] == [{"id": "hero-1", "label": "Hero", "type": "hero"}]
    assert result.version.summary["theme"]["primaryColor"] == "#111827"


def test_save_reuses_blueprint_and_increments_revision(db_session, page, make_layout):
    first = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    second = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    assert second.blueprint.id == first.blueprint.id
    assert second.version.revision == 2
    assert second.version.id != first.version.id


def test_blueprint_name_defaults_to_page_name(db_session, page, make_layout):
    result = save_layout(
        session=db_session, page_id=page.id, layout=make_layout(metadata={}), user_id=OWNER_ID
    )

    assert result.blueprint.name == "Acme Layout"


def test_save_rejects_page_mismatch_before_storage(db_session, page, make_layout):
    with pytest.raises(DocumentMismatchError):
        save_layout(session=db_session, page_id=page.id, layout=make_layout(page_id="page-2"), user_id=OWNER_ID)

    assert list_versions(session=db_session, page_id=page.id, user_id=OWNER_ID) == []


def test_save_revalidates_layout(db_session, page, make_layout):
    with pytest.raises(LayoutValidationError) as excinfo:
        save_layout(session=db_session, page_id=page.id, layout=make_layout(sections=[]), user_id=OWNER_ID)

    assert excinfo.value.issues[0].code == "sections_empty"


def test_save_unknown_page(db_session, make_layout):
    with pytest.raises(NotFoundError):
        save_layout(session=db_session, page_id="page-1", layout=make_layout(), user_id=OWNER_ID)


def test_save_requires_ownership(db_session, page, make_layout):
    with pytest.raises(OwnershipError):
        save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id="someone-else")


def test_publish_promotes_single_version(db_session, page, make_layout):
    saved = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    result = publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)

    assert result.version.id == saved.version.id
    assert result.version.state == LayoutVersionStateEnum.published
    assert result.blueprint.status == BlueprintStatusEnum.published
    assert result.demoted_version_ids == []
    assert result.warnings == []


def test_second_publish_archives_first(db_session, page, make_layout):
    first = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)
    second = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    result = publish_layout(
        session=db_session,
        page_id=page.id,
        layout_id="layout-1",
        user_id=OWNER_ID,
        version_id=second.version.id,
    )

    assert result.version.id == second.version.id
    assert result.demoted_version_ids == [first.version.id]
    assert _states(db_session, first.blueprint.id) == {
        first.version.id: LayoutVersionStateEnum.archived,
        second.version.id: LayoutVersionStateEnum.published,
    }


def test_publish_explicit_older_version(db_session, page, make_layout):
    first = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    result = publish_layout(
        session=db_session,
        page_id=page.id,
        layout_id="layout-1",
        user_id=OWNER_ID,
        version_id=first.version.id,
    )

    assert result.version.id == first.version.id


def test_publish_falls_back_to_newest_version(db_session, page, make_layout):
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    newest = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    result = publish_layout(
        session=db_session,
        page_id=page.id,
        layout_id="not-embedded",
        user_id=OWNER_ID,
        version_id="unknown-version",
    )

    assert result.version.id == newest.version.id


def test_publish_without_blueprint(db_session, page):
    with pytest.raises(NotFoundError):
        publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)


def test_publish_unknown_slug(db_session, page, make_layout):
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    with pytest.raises(NotFoundError):
        publish_layout(
            session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID, slug="pricing"
        )


def test_publish_requires_ownership(db_session, page, make_layout):
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    with pytest.raises(OwnershipError):
        publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id="intruder")


def test_publish_resolves_blueprint_by_embedded_layout(db_session, page, make_layout):
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    pricing = save_layout(
        session=db_session,
        page_id=page.id,
        layout=make_layout(layout_id="layout-pricing", slug="pricing"),
        user_id=OWNER_ID,
    )

    result = publish_layout(session=db_session, page_id=page.id, layout_id="layout-pricing", user_id=OWNER_ID)

    assert result.blueprint.id == pricing.blueprint.id


def test_publish_failure_rolls_back(db_session, page, make_layout, monkeypatch):
    first = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)
    second = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    def failing_commit():
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(PublishConsistencyError) as excinfo:
        publish_layout(
            session=db_session,
            page_id=page.id,
            layout_id="layout-1",
            user_id=OWNER_ID,
            version_id=second.version.id,
        )

    assert excinfo.value.blueprint_id == first.blueprint.id
    assert _states(db_session, first.blueprint.id) == {
        first.version.id: LayoutVersionStateEnum.published,
        second.version.id: LayoutVersionStateEnum.draft,
    }


def test_publish_reports_unexpected_published_count(db_session, page, make_layout, monkeypatch):
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    monkeypatch.setattr(LayoutVersionsRepository, "count_published", lambda self, *, blueprint_id: 2)

    result = publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)

    assert len(result.warnings) == 1
    assert "2 published versions" in result.warnings[0]


def test_list_versions_newest_first(db_session, page, make_layout):
    first = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    second = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    versions = list_versions(session=db_session, page_id=page.id, user_id=OWNER_ID)

    assert [version.id for version in versions] == [second.version.id, first.version.id]


def test_load_editor_layout_prefers_latest_draft(db_session, page, make_layout):
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)
    draft = save_layout(
        session=db_session,
        page_id=page.id,
        layout=make_layout(metadata={"title": "Edited"}),
        user_id=OWNER_ID,
    )

    editor = load_editor_layout(session=db_session, page_id=page.id, user_id=OWNER_ID)

    assert editor.source == "draft"
    assert editor.version_id == draft.version.id
    assert editor.layout.metadata.title == "Edited"


def test_load_editor_layout_falls_back_to_published(db_session, page, make_layout):
    saved = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)

    editor = load_editor_layout(session=db_session, page_id=page.id, user_id=OWNER_ID)

    assert editor.source == "version"
    assert editor.version_id == saved.version.id


def test_load_editor_layout_reads_legacy_record(db_session, make_layout):
    record = serialize_for_persistence(validate_layout(make_layout(page_id="page-legacy")))
    db_session.add(Page(id="page-legacy", owner_id=OWNER_ID, name="Legacy", layout_record=record))
    db_session.commit()

    editor = load_editor_layout(session=db_session, page_id="page-legacy", user_id=OWNER_ID)

    assert editor.source == "legacy"
    assert editor.layout.pageId == "page-legacy"


def test_load_editor_layout_without_any_layout(db_session, page):
    with pytest.raises(NotFoundError):
        load_editor_layout(session=db_session, page_id=page.id, user_id=OWNER_ID)


def test_resolve_live_page_uses_published_layout(db_session, page, make_layout):
    saved = save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)
    publish_layout(session=db_session, page_id=page.id, layout_id="layout-1", user_id=OWNER_ID)

    live = resolve_live_page(session=db_session, page_id=page.id)

    assert live.source == "layout"
    assert live.version_id == saved.version.id
    assert live.layout.id == "layout-1"


def test_resolve_live_page_ignores_drafts_and_uses_fallback_html(db_session, page, make_layout):
    page.fallback_html = "<main>Coming soon</main>"
    db_session.commit()
    save_layout(session=db_session, page_id=page.id, layout=make_layout(), user_id=OWNER_ID)

    live = resolve_live_page(session=db_session, page_id=page.id)

    assert live.source == "html"
    assert live.html == "<main>Coming soon</main>"


def test_resolve_live_page_without_content(db_session, page):
    with pytest.raises(NotFoundError):
        resolve_live_page(session=db_session, page_id=page.id)


def test_full_editing_workflow(db_session, page, make_layout, id_factory):
    from layout_studio.services.layout_editor import LayoutEditorStore
    from layout_studio.services.section_renderer import render_section

    store = LayoutEditorStore(validate_layout(make_layout()), id_factory=id_factory)
    feature = store.add_section({"id": "", "type": "feature-grid", "label": "Features"})
    view = render_section(feature)
    assert [item.title for item in view.items] == ["Premium experience"]

    store.reorder_sections([feature.id, "hero-1"])
    first = save_layout(session=db_session, page_id=page.id, layout=store.layout, user_id=OWNER_ID)
    assert [section["id"] for section in first.version.layout["sections"]] == [feature.id, "hero-1"]
    publish_layout(session=db_session, page_id=page.id, layout_id=store.layout.id, user_id=OWNER_ID)

    store.update_section_field("hero-1", {"kind": "text", "key": "heading", "label": "Heading", "value": "v2"})
    second = save_layout(session=db_session, page_id=page.id, layout=store.layout, user_id=OWNER_ID)
    result = publish_layout(
        session=db_session,
        page_id=page.id,
        layout_id=store.layout.id,
        user_id=OWNER_ID,
        version_id=second.version.id,
    )

    assert result.demoted_version_ids == [first.version.id]
    assert _states(db_session, first.blueprint.id) == {
        first.version.id: LayoutVersionStateEnum.archived,
        second.version.id: LayoutVersionStateEnum.published,
    }
