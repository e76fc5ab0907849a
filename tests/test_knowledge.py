"""Tests for the markdown knowledge base."""

import pytest

from tests.helpers import PACKAGE_DATA
from triage_study.services.knowledge import KnowledgeBase, format_title, split_frontmatter


@pytest.fixture
def kb(tmp_path):
    (tmp_path / "policies").mkdir()
    (tmp_path / "policies" / "return-policy.md").write_text(
        "---\ntitle: Returns and Refunds\n---\nReturns are accepted within 30 days.\n"
    )
    (tmp_path / "policies" / "shipping.md").write_text("# Shipping Options\nStandard takes 5-7 days.\n")
    (tmp_path / "faq_general.md").write_text("Ask us anything.\n")
    (tmp_path / "notes.txt").write_text("ignored")
    return KnowledgeBase(tmp_path)


class TestTitles:
    def test_format_title(self):
        assert format_title("return-policy.md") == "Return Policy"
        assert format_title("login_issues") == "Login Issues"

    def test_split_frontmatter(self):
        meta, body = split_frontmatter("---\ntitle: Hello\n---\nBody\n")
        assert meta == {"title": "Hello"}
        assert body == "Body\n"

    def test_no_frontmatter(self):
        assert split_frontmatter("# Heading\n") == ({}, "# Heading\n")

    def test_invalid_frontmatter_is_ignored(self):
        meta, body = split_frontmatter("---\n: [unclosed\n---\nBody")
        assert meta == {}
        assert body == "Body"


class TestKnowledgeBase:
    def test_tree_structure(self, kb):
        tree = kb.build_tree()
        assert [n.title for n in tree] == ["Faq General", "Policies"]
        policies = tree[1]
        assert policies.is_category
        assert [c.title for c in policies.children] == ["Returns And Refunds", "Shipping Options"]
        assert policies.children[0].id == "policies/return-policy.md"

    def test_frontmatter_is_stripped_from_content(self, kb):
        node = kb.get_node("policies/return-policy.md")
        assert node.content.startswith("Returns are accepted")

    def test_search_matches_titles_and_content(self, kb):
        assert [n.id for n in kb.search("5-7 days")] == ["policies/shipping.md"]
        assert [n.id for n in kb.search("POLICIES")] == ["policies"]
        assert kb.search("   ") == []

    def test_documents_excludes_categories(self, kb):
        assert {n.id for n in kb.documents()} == {
            "faq_general.md",
            "policies/return-policy.md",
            "policies/shipping.md",
        }

    def test_missing_directory_is_empty(self, tmp_path):
        assert KnowledgeBase(tmp_path / "missing").build_tree() == []

    def test_to_dict(self, kb):
        data = kb.build_tree()[1].to_dict()
        assert data["expanded"] is False
        assert "content" not in data
        assert data["children"][0]["content"].startswith("Returns")


class TestBundledKnowledge:
    def test_categories(self):
        kb = KnowledgeBase(PACKAGE_DATA / "knowledge")
        assert kb.categories() == ["Policies", "Troubleshooting"]

    def test_frontmatter_titles(self):
        kb = KnowledgeBase(PACKAGE_DATA / "knowledge")
        assert kb.get_node("troubleshooting/login-issues.md").title == "Login Issues"
        assert kb.search("authorization hold")
