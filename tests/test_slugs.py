from __future__ import annotations

import pytest

from workspace_hub.workspaces.slugs import generate_workspace_slug, validate_workspace_slug


@pytest.mark.parametrize("slug", ["ab", "acme", "acme-rentals", "a1", "0-9", "x" * 63])
def test_valid_slugs(slug: str) -> None:
    assert validate_workspace_slug(slug) is True


@pytest.mark.parametrize(
    "slug",
    ["", "a", "-acme", "acme-", "Acme", "acme_rentals", "acme rentals", "x" * 64, "café"],
)
def test_invalid_slugs(slug: str) -> None:
    assert validate_workspace_slug(slug) is False


def test_non_string_slug_is_invalid() -> None:
    assert validate_workspace_slug(None) is False
    assert validate_workspace_slug(42) is False


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Acme Rentals", "acme-rentals"),
        ("  Hello   World  ", "hello-world"),
        ("Tom's Tools & Co.", "toms-tools-co"),
        ("Café Déjà Vu", "cafe-deja-vu"),
        ("--Edge--Case--", "edge-case"),
        ("a - b", "a-b"),
    ],
)
def test_generate_slug(name: str, expected: str) -> None:
    assert generate_workspace_slug(name) == expected


def test_generated_slugs_validate_when_long_enough() -> None:
    for name in ["Acme Rentals", "Blue Sky Cleaning Services", "Nº 1 Plumbing!!", "x" * 100]:
        slug = generate_workspace_slug(name)
        assert len(slug) <= 63
        assert validate_workspace_slug(slug) is True


def test_generated_slug_is_trimmed_after_truncation() -> None:
    name = "a" * 62 + " bcd"
    slug = generate_workspace_slug(name)
    assert slug == "a" * 62
    assert validate_workspace_slug(slug) is True


def test_valid_slugs_are_fixed_points() -> None:
    for slug in ["acme", "acme-rentals", "a--b", "team42"]:
        assert generate_workspace_slug(slug) == slug
        assert generate_workspace_slug(generate_workspace_slug(slug)) == slug
