"""Pytest configuration and fixtures for service layer tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

import category_tree.services.database as db_module
from category_tree import models  # noqa: F401
from category_tree.models.base import Base
from category_tree.services import build_category_services
from category_tree.services.dto import CategoryData, CategoryGroupData, GroupLocaleData
from category_tree.services.permissions import StaticPermissionChecker
from category_tree.services.template_resolver import FileSystemTemplateResolver


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture
def templates_dir(tmp_path):
    """Site templates directory with a couple of templates."""
    root = tmp_path / "templates"
    (root / "topics").mkdir(parents=True)
    (root / "topics" / "_category.html").write_text("{{ category.title }}")
    (root / "news").mkdir()
    (root / "news" / "index.twig").write_text("{{ category.title }}")
    return root


@pytest.fixture
def permissions():
    return StaticPermissionChecker()


@pytest.fixture
def services(test_db, templates_dir, permissions):
    """Fully wired services on the test database."""
    return build_category_services(
        permissions=permissions,
        templates=FileSystemTemplateResolver(templates_dir),
    )


def _make_group(name="Topics", handle="topics", locales=None, **kwargs):
    """Build an unsaved group; locales maps locale -> (url_format, nested_url_format)."""
    if locales is None:
        locales = {"en": ("topics/{slug}", "{parent.uri}/{slug}")}
    kwargs.setdefault("template", "topics/_category")
    group = CategoryGroupData(name=name, handle=handle, **kwargs)
    group.set_locales(
        GroupLocaleData(locale=locale, url_format=formats[0], nested_url_format=formats[1])
        for locale, formats in locales.items()
    )
    return group


@pytest.fixture
def make_group():
    """Factory for unsaved groups."""
    return _make_group


@pytest.fixture
def saved_group(services):
    """A saved group with URLs in English, unlimited depth."""
    group = _make_group()
    assert services.groups.save_group(group), group.errors
    return group


@pytest.fixture
def add_category(services):
    """Factory saving a category; ``parent`` is a saved CategoryData or None."""

    def _add(group, title, parent=None, locale="en", **kwargs):
        category = CategoryData(
            group_id=group.id,
            locale=locale,
            title=title,
            new_parent_id=parent.id if parent is not None else "",
            **kwargs,
        )
        assert services.categories.save_category(category), category.errors
        return category

    return _add
