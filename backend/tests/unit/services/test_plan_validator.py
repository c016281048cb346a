"""
Unit Tests for the strict Plan Validator
"""
import copy

import pytest

from patchstream.schemas.plan import PlanCandidate
from patchstream.services.plan_validator import ALLOWED_CATEGORIES, validate_plan_strict


BASE_PLAN = {
    "title": "Landing Build Plan",
    "description": "Build a complete static site with linked pages.",
    "stack": "html-css-javascript",
    "fileTree": ["index.html", "style.css", "script.js", "pages/about.html"],
    "steps": [
        {"id": "1", "title": "Scaffold", "category": "setup",
         "files": ["index.html", "style.css", "script.js"], "description": "Create base files."},
        {"id": "2", "title": "Layout", "category": "layout",
         "files": ["index.html", "style.css"], "description": "Build semantic layout."},
        {"id": "3", "title": "Components", "category": "components",
         "files": ["index.html", "pages/about.html", "style.css"], "description": "Build page sections and links."},
        {"id": "4", "title": "Interactivity", "category": "interactivity",
         "files": ["script.js"], "description": "Add navigation and form behavior."},
    ],
}


@pytest.fixture
def plan():
    return copy.deepcopy(BASE_PLAN)


class TestValidPlans:
    """Test plans that pass"""

    def test_accepts_valid_plan(self, plan):
        result = validate_plan_strict(plan)

        assert result.ok is True
        assert result.issues == ()
        assert len(result.normalized.steps) == 4
        assert result.normalized.file_tree[0] == "index.html"

    def test_accepts_normalized_candidate(self, plan):
        candidate = PlanCandidate.model_validate(plan)
        assert validate_plan_strict(candidate).ok is True

    def test_typescript_counts_as_javascript(self, plan):
        plan["fileTree"] = ["index.html", "style.css", "src/main.ts", "pages/about.html"]
        plan["steps"][0]["files"] = ["index.html", "style.css", "src/main.ts"]
        plan["steps"][3]["files"] = ["src/main.ts"]
        assert validate_plan_strict(plan).ok is True

    def test_step_files_checked_only_when_file_tree_present(self, plan):
        plan["fileTree"] = []
        assert validate_plan_strict(plan).ok is True


class TestInvalidPlans:
    """Test issue reporting"""

    def test_rejects_invalid_plan_with_all_issues(self, plan):
        plan["fileTree"] = ["index.html", "index.html", "style.css"]
        plan["steps"] = [{"id": "2", "title": "Only", "category": "unknown", "files": ["missing.js"], "description": ""}]

        result = validate_plan_strict(plan)

        assert result.ok is False
        assert "Plan must include 4-8 steps, received 1" in result.issues
        assert "Duplicate fileTree entry: index.html" in result.issues
        assert "Step 1: description is required" in result.issues
        assert 'Step 1: invalid category "unknown"' in result.issues
        assert 'Step order mismatch at index 1: expected id "1"' in result.issues
        assert "Step 2 references file not present in fileTree: missing.js" in result.issues

    def test_step_order_mismatch(self, plan):
        plan["steps"] = plan["steps"][:3]
        plan["steps"].append(copy.deepcopy(plan["steps"][2]))
        ids = ["1", "3", "2", "4"]
        for step, step_id in zip(plan["steps"], ids):
            step["id"] = step_id

        result = validate_plan_strict(plan)

        assert result.ok is False
        assert 'Step order mismatch at index 2: expected id "2"' in result.issues
        assert 'Step order mismatch at index 3: expected id "3"' in result.issues
        assert not any("index 1:" in issue for issue in result.issues)

    def test_missing_responsibilities(self, plan):
        plan["fileTree"] = ["index.html", "pages/about.html"]
        for step in plan["steps"]:
            step["files"] = ["index.html"]

        result = validate_plan_strict(plan)

        assert "Plan must include CSS responsibility" in result.issues
        assert "Plan must include JavaScript responsibility" in result.issues
        assert "Plan must include HTML responsibility" not in result.issues

    def test_too_many_steps(self, plan):
        extra = [
            {"id": str(i), "title": f"Step {i}", "category": "polish", "files": [], "description": "More."}
            for i in range(5, 10)
        ]
        plan["steps"].extend(extra)
        result = validate_plan_strict(plan)
        assert "Plan must include 4-8 steps, received 9" in result.issues

    def test_blank_title(self, plan):
        plan["title"] = "   "
        assert "Plan title is missing" in validate_plan_strict(plan).issues

    def test_duplicate_file_tree_is_case_insensitive(self, plan):
        plan["fileTree"].append("Index.HTML")
        assert "Duplicate fileTree entry: Index.HTML" in validate_plan_strict(plan).issues

    @pytest.mark.parametrize("payload", [None, "not a plan", 42, {}])
    def test_garbage_never_raises(self, payload):
        result = validate_plan_strict(payload)
        assert result.ok is False
        assert "Plan must include 4-8 steps, received 0" in result.issues


class TestCategories:
    """Test category table"""

    def test_allowed_categories(self):
        assert {"setup", "layout", "components", "interactivity", "styling", "polish",
                "config", "frontend", "backend", "integration", "testing", "deployment"} == ALLOWED_CATEGORIES

    def test_category_is_case_insensitive(self, plan):
        plan["steps"][0]["category"] = "SETUP"
        assert validate_plan_strict(plan).ok is True
