"""
Unit Tests for the strict Patch Validator
"""
from patchstream.services.patch_validator import validate_patch_strict


def patch(*lines):
    return "\n".join(lines)


GOOD_PATCH = patch(
    "[[PATCH_FILE: index.html | mode: create]]",
    '<!doctype html><html><head><link rel="stylesheet" href="style.css"></head>'
    '<body><script src="script.js"></script></body></html>',
    "[[END_FILE]]",
    "[[PATCH_FILE: style.css | mode: create]]",
    "body{margin:0;}",
    "[[END_FILE]]",
    "[[PATCH_FILE: script.js | mode: create]]",
    'console.log("ok");',
    "[[END_FILE]]",
)


class TestHappyPath:
    """Test valid patch streams"""

    def test_accepts_complete_patch(self):
        result = validate_patch_strict(GOOD_PATCH)

        assert result.ok is True
        assert result.issues == ()
        assert result.stats.starts == 3
        assert result.stats.ends == 3
        assert result.stats.events >= 9

    def test_single_file_stats(self):
        result = validate_patch_strict("[[START_FILE: index.html]]<h1>x</h1>[[END_FILE]]")

        assert result.ok is True
        assert (result.stats.starts, result.stats.ends) == (1, 1)
        assert result.stats.events == 3

    def test_non_sensitive_delete_allowed(self):
        text = GOOD_PATCH + "\n[[DELETE_FILE: old.js | reason: unused]]"
        assert validate_patch_strict(text).ok is True


class TestMarkerCounts:
    """Test start / end marker accounting"""

    def test_no_markers(self):
        result = validate_patch_strict("I could not produce any files.")

        assert result.ok is False
        assert "No patch file markers were found" in result.issues
        assert not any("mismatch" in issue for issue in result.issues)

    def test_missing_end_marker(self):
        result = validate_patch_strict("[[START_FILE: a.js]]x[[START_FILE: b.js]]y[[END_FILE]]")
        assert "File marker mismatch: starts=2, ends=1" in result.issues

    def test_empty_input(self):
        result = validate_patch_strict(None)
        assert result.issues == ("No patch file markers were found",)
        assert result.stats.events == 0


class TestDuplicates:
    """Test duplicate-purpose detection"""

    def test_rejects_duplicate_css_and_unsafe_delete(self):
        text = patch(
            "[[PATCH_FILE: style.css | mode: create]]",
            "body{margin:0;}",
            "[[END_FILE]]",
            "[[PATCH_FILE: main.css | mode: create]]",
            "h1{color:red;}",
            "[[END_FILE]]",
            "[[DELETE_FILE: package.json | reason: cleanup]]",
        )

        result = validate_patch_strict(text)

        assert result.ok is False
        assert "Unsafe delete operation for sensitive file: package.json" in result.issues
        assert "Duplicate-purpose CSS files in one output: style.css, main.css" in result.issues

    def test_duplicate_javascript(self):
        text = patch(
            "[[START_FILE: js/app.js]]a()[[END_FILE]]",
            "[[START_FILE: main.js]]b()[[END_FILE]]",
        )
        result = validate_patch_strict(text)
        assert "Duplicate-purpose JavaScript files in one output: js/app.js, main.js" in result.issues

    def test_same_file_twice_is_not_a_duplicate(self):
        text = patch(
            "[[START_FILE: style.css]]a{}[[END_FILE]]",
            "[[EDIT_FILE: style.css]]b{}[[END_FILE]]",
        )
        assert validate_patch_strict(text).ok is True

    def test_unsafe_move(self):
        text = GOOD_PATCH + "\n[[MOVE_FILE: vite.config.ts -> config/vite.config.ts]]"
        result = validate_patch_strict(text)
        assert "Unsafe move operation for sensitive file: vite.config.ts" in result.issues


class TestCriticalFiles:
    """Test empty critical files"""

    def test_whitespace_only_critical_file(self):
        text = patch("[[START_FILE: style.css]]", "   ", "[[END_FILE]]")
        result = validate_patch_strict(text)
        assert "Critical file emitted with empty content: style.css" in result.issues

    def test_critical_file_without_body(self):
        result = validate_patch_strict("[[START_FILE: index.html]][[END_FILE]]")
        assert "Critical file emitted with empty content: index.html" in result.issues

    def test_other_files_may_be_empty(self):
        assert validate_patch_strict("[[START_FILE: .nojekyll]][[END_FILE]]").ok is True
