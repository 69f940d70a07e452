"""Tests for the visibility and ownership rules.

These are pure functions over (principal, document); documents are built in
memory and never touch the database.
"""

import pytest

from robokache.exceptions import DocumentNotFoundError, ForbiddenError, InvalidParentError
from robokache.models import Document, Visibility
from robokache.services import policy

OWNER = "owner@robokache.com"
OTHER = "other@robokache.com"

TIERS = list(Visibility)


def _doc(visibility: Visibility, owner: str = OWNER, parent=None) -> Document:
    return Document(id=1, owner=owner, parent=parent, visibility=int(visibility), doc_metadata={})


class TestVisibility:

    def test_tiers_are_ordered(self):
        assert Visibility.INVISIBLE < Visibility.PRIVATE < Visibility.SHAREABLE < Visibility.PUBLIC

    @pytest.mark.parametrize("raw,expected", [
        (0, Visibility.INVISIBLE),
        (3, Visibility.PUBLIC),
        ("public", Visibility.PUBLIC),
        ("Shareable", Visibility.SHAREABLE),
        (Visibility.PRIVATE, Visibility.PRIVATE),
    ])
    def test_parse(self, raw, expected):
        assert Visibility.parse(raw) == expected

    def test_document_tier(self):
        assert _doc(Visibility.SHAREABLE).tier is Visibility.SHAREABLE

    @pytest.mark.parametrize("raw", [4, -1, "secret", True, None, 1.5])
    def test_parse_rejects_unknown(self, raw):
        with pytest.raises(ValueError):
            Visibility.parse(raw)


class TestCanView:

    @pytest.mark.parametrize("tier", TIERS)
    def test_owner_always_sees_own(self, tier):
        assert policy.can_view(OWNER, _doc(tier))

    @pytest.mark.parametrize("tier,expected", [
        (Visibility.INVISIBLE, False),
        (Visibility.PRIVATE, False),
        (Visibility.SHAREABLE, True),
        (Visibility.PUBLIC, True),
    ])
    def test_non_owner_needs_shareable(self, tier, expected):
        assert policy.can_view(OTHER, _doc(tier)) is expected
        assert policy.can_view(None, _doc(tier)) is expected

    def test_monotone_in_visibility(self):
        for principal in (OWNER, OTHER, None):
            results = [policy.can_view(principal, _doc(t)) for t in TIERS]
            assert results == sorted(results)


class TestFilterListable:

    def test_non_owner_sees_only_public(self):
        docs = [_doc(t) for t in TIERS]
        listed = policy.filter_listable(OTHER, docs)
        assert [Visibility(d.visibility) for d in listed] == [Visibility.PUBLIC]

    def test_anonymous_sees_only_public(self):
        docs = [_doc(t) for t in TIERS]
        assert len(policy.filter_listable(None, docs)) == 1

    def test_owner_sees_everything(self):
        docs = [_doc(t) for t in TIERS]
        assert policy.filter_listable(OWNER, docs) == docs

    def test_listing_is_stricter_than_viewing(self):
        for tier in TIERS:
            doc = _doc(tier)
            if policy.filter_listable(OTHER, [doc]):
                assert policy.can_view(OTHER, doc)


class TestWriteRules:

    def test_anonymous_cannot_create(self):
        assert not policy.can_create(None)
        assert policy.can_create(OWNER)

    @pytest.mark.parametrize("tier", TIERS)
    def test_only_owner_edits_and_deletes(self, tier):
        doc = _doc(tier)
        assert policy.can_edit(OWNER, doc)
        assert policy.can_delete(OWNER, doc)
        assert not policy.can_edit(OTHER, doc)
        assert not policy.can_delete(OTHER, doc)
        assert not policy.can_edit(None, doc)
        assert not policy.can_delete(None, doc)

    def test_owned_flag(self):
        doc = _doc(Visibility.PUBLIC)
        assert policy.owned_flag(OWNER, doc) is True
        assert policy.owned_flag(OTHER, doc) is False

    def test_pure(self):
        doc = _doc(Visibility.SHAREABLE)
        first = [policy.can_view(OTHER, doc), policy.can_edit(OTHER, doc)]
        second = [policy.can_view(OTHER, doc), policy.can_edit(OTHER, doc)]
        assert first == second
        assert doc.visibility == int(Visibility.SHAREABLE)
        assert doc.owner == OWNER


class TestParentAssignment:

    def test_no_parent_requested(self):
        policy.validate_parent_assignment(OWNER, Visibility.PUBLIC, None, parent_requested=False)

    def test_missing_parent(self):
        with pytest.raises(InvalidParentError):
            policy.validate_parent_assignment(OWNER, Visibility.PRIVATE, None)

    def test_parent_owned_by_someone_else(self):
        with pytest.raises(InvalidParentError):
            policy.validate_parent_assignment(OWNER, Visibility.PRIVATE, _doc(Visibility.PUBLIC, owner=OTHER))

    @pytest.mark.parametrize("parent_tier", TIERS)
    @pytest.mark.parametrize("child_tier", TIERS)
    def test_child_never_more_visible(self, parent_tier, child_tier):
        parent = _doc(parent_tier)
        if child_tier <= parent_tier:
            policy.validate_parent_assignment(OWNER, child_tier, parent)
        else:
            with pytest.raises(InvalidParentError):
                policy.validate_parent_assignment(OWNER, child_tier, parent)

    def test_lowering_below_children(self):
        children = [_doc(Visibility.SHAREABLE), _doc(Visibility.PRIVATE)]
        policy.validate_children_visibility(Visibility.SHAREABLE, children)
        with pytest.raises(InvalidParentError):
            policy.validate_children_visibility(Visibility.PRIVATE, children)

    def test_no_children(self):
        policy.validate_children_visibility(Visibility.INVISIBLE, [])


class TestEnsureHelpers:

    def test_missing_is_not_found(self):
        with pytest.raises(DocumentNotFoundError):
            policy.ensure_viewable(OWNER, None, "abc")

    def test_hidden_is_not_found(self):
        with pytest.raises(DocumentNotFoundError) as hidden:
            policy.ensure_viewable(OTHER, _doc(Visibility.PRIVATE), "abc")
        with pytest.raises(DocumentNotFoundError) as missing:
            policy.ensure_viewable(OTHER, None, "abc")
        assert hidden.value.to_dict() == missing.value.to_dict()

    def test_viewable_returned(self):
        doc = _doc(Visibility.SHAREABLE)
        assert policy.ensure_viewable(OTHER, doc, "abc") is doc

    def test_edit_visible_not_owned_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            policy.ensure_editable(OTHER, _doc(Visibility.PUBLIC), "abc")

    def test_edit_hidden_is_not_found(self):
        with pytest.raises(DocumentNotFoundError):
            policy.ensure_editable(OTHER, _doc(Visibility.PRIVATE), "abc")

    def test_edit_owned(self):
        doc = _doc(Visibility.INVISIBLE)
        assert policy.ensure_editable(OWNER, doc, "abc") is doc
