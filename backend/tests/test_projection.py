"""Tests for field projection."""

from pbagent.productboard import project
from pbagent.productboard.projection import FEATURE_FIELDS, projector, truncate_text


FEATURE = {
    "id": "f1",
    "name": "Dark mode",
    "description": "Let users pick a dark theme.",
    "status": {"id": "s1", "name": "In progress", "completed": False},
    "product": {"id": "p1", "name": "coder", "links": {"self": "x"}},
    "owner": {"id": "u1", "email": "pm@example.com"},
    "updatedAt": "2024-05-01T10:00:00Z",
    "links": {"html": "https://coder.productboard.com/f1"},
}


class TestProject:
    def test_default_feature_fields(self):
        assert project(FEATURE, FEATURE_FIELDS) == {
            "id": "f1",
            "name": "Dark mode",
            "description": "Let users pick a dark theme.",
            "status": {"id": "s1", "name": "In progress"},
            "product": {"id": "p1", "name": "coder"},
            "owner": {"id": "u1", "name": "pm@example.com"},
            "updatedAt": "2024-05-01T10:00:00Z",
        }

    def test_wildcard_returns_everything(self):
        result = project(FEATURE, ["id", "*"])
        assert result == FEATURE
        assert result is not FEATURE

    def test_long_text_is_truncated(self):
        record = {"description": "x" * 600}
        result = project(record, ["description"])
        assert len(result["description"]) == 503
        assert result["description"].endswith("...")

    def test_text_at_limit_is_untouched(self):
        record = {"content": "y" * 500}
        assert project(record, ["content"])["content"] == "y" * 500

    def test_falsy_fields_are_omitted(self):
        record = {"id": "f1", "name": "", "description": None, "tags": [], "owner": {}}
        assert project(record, ["id", "name", "description", "tags", "owner", "missing"]) == {"id": "f1"}

    def test_owner_prefers_name(self):
        record = {"owner": {"name": "Ada", "email": "ada@example.com"}}
        assert project(record, ["owner"]) == {"owner": {"name": "Ada"}}

    def test_product_falls_back_to_parent(self):
        record = {"parent": {"product": {"id": "p2", "name": "cloud"}}}
        assert project(record, ["product"]) == {"product": {"id": "p2", "name": "cloud"}}

    def test_assignment_refs(self):
        record = {
            "feature": {"id": "f1", "links": {}},
            "release": {"id": "r1", "name": "Q3"},
            "state": "assigned",
        }
        assert project(record, ["feature", "release", "state"]) == {
            "feature": {"id": "f1"},
            "release": {"id": "r1", "name": "Q3"},
            "state": "assigned",
        }

    def test_unknown_fields_copied_verbatim(self):
        record = {"timeframe": {"startDate": "2024-01-01", "endDate": "2024-03-31"}}
        assert project(record, ["timeframe"]) == record


class TestProjector:
    def test_uses_default_when_fields_missing(self):
        bound = projector(None, ["id"])
        assert bound({"id": "a", "name": "b"}) == {"id": "a"}

    def test_explicit_fields_override_default(self):
        bound = projector(["name"], ["id"])
        assert bound({"id": "a", "name": "b"}) == {"name": "b"}


def test_truncate_ignores_non_strings():
    assert truncate_text(12345) == 12345
