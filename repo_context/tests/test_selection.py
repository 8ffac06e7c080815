"""
Tests for file selection: bypass, scoring, neighbor expansion and the selector.
"""
import pytest
from repo_context.bypass import bypass_selection, match_explicit_files
from repo_context.classifier import classify_query
from repo_context.expander import (
    expand_with_neighbors,
    fallback_selection,
    find_important_files,
    with_important_files,
)
from repo_context.file_filters import is_ignored_path, prune_tree, should_skip_file, tree_stats
from repo_context.schemas import Bypassed, QueryClassification, Scored
from repo_context.scorer import score_files, score_path, top_candidates
from repo_context.selection import FileSelector


LOGIN_TREE = ["src/auth/login.ts", "src/auth/session.ts", "README.md"]


@pytest.fixture
def selector(caches, settings):
    """Selector with a fresh cache service."""
    return FileSelector(caches, settings)


# Bypass

def test_bypass_explicit_mention():
    """A named file bypasses scoring; context files follow in tree order."""
    tree = ["src/auth.ts", "src/db.ts", "package.json", "README.md"]
    result = bypass_selection("explain src/auth.ts please", tree)

    assert isinstance(result, Bypassed)
    assert result.kind == "bypassed"
    assert result.files == ["src/auth.ts", "package.json", "README.md"]


def test_bypass_is_case_insensitive():
    tree = ["src/Auth.ts", "lib/util.py"]
    assert match_explicit_files("what is in AUTH.TS", tree) == ["src/Auth.ts"]


def test_bypass_context_files_need_exact_root_path():
    """Nested manifests are not pulled in as context files."""
    tree = ["src/auth.ts", "web/package.json"]
    result = bypass_selection("look at auth.ts", tree)
    assert result.files == ["src/auth.ts"]


def test_bypass_caps_selection():
    tree = [f"pkg/mod{i}.py" for i in range(15)] + ["README.md"]
    query = " ".join(f"mod{i}.py" for i in range(15))
    result = bypass_selection(query, tree, limit=10)

    assert len(result.files) == 10
    assert "README.md" not in result.files


def test_no_bypass_without_mention():
    assert bypass_selection("How does login work?", LOGIN_TREE) is None
    assert bypass_selection("", LOGIN_TREE) is None


# Scoring

def test_login_scenario_scores():
    """Keyword and README rules are additive; unrelated files score 0."""
    query = "How does login work?"
    classification = classify_query(query)
    assert classification.intent == "flow"

    assert score_path(query, classification, "src/auth/login.ts").score == 20
    assert score_path(query, classification, "README.md").score == 15
    assert score_path(query, classification, "src/auth/session.ts").score == 0

    scored = score_files(query, classification, LOGIN_TREE)
    assert [f.path for f in scored] == ["src/auth/login.ts", "README.md"]


def test_filename_mention_scores_highest():
    classification = QueryClassification(intent="general", keywords=[])
    result = score_path("what does helpers.py do", classification, "lib/helpers.py")
    assert result.score == 50
    assert "exact filename match" in result.reason


def test_route_files_for_flow_questions():
    classification = QueryClassification(intent="flow", keywords=[])
    assert score_path("q", classification, "src/api/users.ts").score == 25
    assert score_path("q", classification, "src/lib/users.ts").score == 0
    # Route hints only count for code files
    assert score_path("q", classification, "docs/api.md").score == 0


def test_documentation_intent_scores_docs():
    classification = QueryClassification(intent="documentation", keywords=[])
    assert score_path("q", classification, "docs/setup.md").score == 30
    # README gets both the doc and the readme bonus
    assert score_path("q", classification, "README.md").score == 45


def test_scores_are_monotone_in_keywords():
    """Adding a matching keyword never lowers a score."""
    fewer = QueryClassification(intent="general", keywords=["auth"])
    more = QueryClassification(intent="general", keywords=["auth", "login"])
    path = "src/auth/login.ts"
    assert score_path("q", more, path).score >= score_path("q", fewer, path).score


def test_equal_scores_keep_tree_order():
    classification = QueryClassification(intent="general", keywords=["user"])
    tree = ["b/user.ts", "a/user.ts", "c/user.ts"]
    scored = score_files("q", classification, tree)
    assert [f.path for f in scored] == tree


def test_score_files_limit_and_threshold():
    classification = QueryClassification(intent="general", keywords=["item"])
    tree = [f"src/item{i}.ts" for i in range(40)]
    scored = score_files("q", classification, tree, limit=30)
    assert len(scored) == 30

    assert top_candidates(scored, min_score=10, limit=20) == tree[:20]
    assert top_candidates(scored, min_score=21) == []


# Expansion

def test_expansion_is_non_destructive():
    """Seeds stay first and in order; no duplicates are added."""
    tree = ["src/a/x.ts", "src/a/y.ts", "src/a/z.ts", "src/a/w.ts", "src/top.ts", "README.md"]
    seeds = ["src/a/y.ts", "src/a/x.ts"]
    expanded = expand_with_neighbors(seeds, tree)

    assert expanded[:2] == seeds
    assert len(expanded) == len(set(expanded))
    assert "src/top.ts" in expanded


def test_expansion_caps_siblings():
    tree = [f"lib/f{i}.py" for i in range(10)]
    expanded = expand_with_neighbors(["lib/f0.py"], tree)
    assert expanded == ["lib/f0.py", "lib/f1.py", "lib/f2.py", "lib/f3.py"]


def test_expansion_root_files_have_no_siblings():
    tree = ["README.md", "setup.py", "main.py"]
    assert expand_with_neighbors(["main.py"], tree) == ["main.py"]


def test_grandparent_files_are_code_only():
    tree = ["src/auth/login.ts", "src/notes.md", "src/index.ts", "src/app.tsx", "src/extra.ts"]
    expanded = expand_with_neighbors(["src/auth/login.ts"], tree)
    assert expanded == ["src/auth/login.ts", "src/index.ts", "src/app.tsx"]


def test_important_files():
    tree = ["docs/README.md", "README.md", "package.json", "src/main.ts"]
    assert find_important_files(tree) == ["docs/README.md", "package.json"]
    assert with_important_files(["src/main.ts"], tree) == ["src/main.ts", "docs/README.md", "package.json"]
    assert with_important_files(["src/main.ts"], tree, limit=2) == ["src/main.ts", "docs/README.md"]
    assert fallback_selection(["src/main.ts"]) == []


# Filters

def test_prune_tree():
    tree = ["src/a.ts", "logo.png", "yarn.lock", "node_modules/x/index.js", ".git/HEAD", "app.js.map"]
    assert prune_tree(tree) == ["src/a.ts"]


def test_tree_stats():
    stats = tree_stats(["src/a.ts", "src/b.py", "README.md", "logo.png", "Makefile"])
    assert stats == {"javascript": 1, "python": 1, "markdown": 1, "image": 1, "other": 1}


def test_ignored_paths_and_skipped_files():
    assert is_ignored_path("node_modules/react/index.js")
    assert is_ignored_path(".github/workflows/ci.yml")
    assert is_ignored_path("dist/bundle.js")
    assert not is_ignored_path("src/index.ts")
    assert not is_ignored_path(".env")

    assert should_skip_file("video/intro.mp4", 10)
    assert should_skip_file("big.ts", 2_000_000)
    assert should_skip_file("public/photo.png", 600_000)
    assert not should_skip_file("public/icon.png", 1_000)
    assert should_skip_file("static/app.min.js", 10)
    assert not should_skip_file("src/app.ts", 10)


# Selector

def test_selector_login_scenario(selector):
    """Scored seeds come first, then neighbors, then README/manifest files."""
    result = selector.select("How does login work?", LOGIN_TREE, "acme/web")

    assert isinstance(result, Scored)
    assert result.files == ["src/auth/login.ts", "README.md", "src/auth/session.ts"]
    assert not result.cached


def test_selector_caches_scored_selection(selector, caches):
    first = selector.select("How does login work?", LOGIN_TREE, "acme/web")
    second = selector.select("  HOW does login work?  ", LOGIN_TREE, "acme/web")

    assert second.cached
    assert second.files == first.files
    # Other repositories do not share the entry
    other = selector.select("How does login work?", LOGIN_TREE, "acme/api")
    assert not other.cached


def test_selector_bypass_skips_cache(selector, caches):
    caches.store_selection("acme/web", "explain login.ts", ["stale.ts"])
    result = selector.select("explain login.ts", LOGIN_TREE, "acme/web")

    assert result.kind == "bypassed"
    assert result.files == ["src/auth/login.ts", "README.md"]


def test_selector_fallback_is_not_cached(selector, caches):
    tree = ["src/zzz.ts", "tsconfig.json"]
    result = selector.select("qqq", tree, "acme/web")

    assert result.fallback
    assert result.files == ["tsconfig.json"]
    assert caches.load_selection("acme/web", "qqq") is None


def test_selector_empty_tree(selector):
    result = selector.select("anything", [], "acme/web")
    assert result.files == []
    assert result.fallback
