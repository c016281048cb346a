"""
Unit Tests for model response decoding
"""
import pytest

from patchstream.utils.response_parser import (
    extract_delta_content,
    extract_message_content,
    normalize_plan_payload,
    parse_json_loose,
)


class TestExtractContent:
    """Test chat-completion shape handling"""

    def test_message_content_is_stripped(self, make_chat_response):
        assert extract_message_content(make_chat_response("  hi \n")) == "hi"

    @pytest.mark.parametrize("response", [
        None,
        "text",
        {"choices": "nope"},
        {"choices": [None]},
        {"choices": [{"message": {"content": 12}}]},
    ])
    def test_unexpected_shapes(self, response):
        assert extract_message_content(response) == ""

    def test_delta_content(self):
        chunk = {"choices": [{"delta": {"content": " partial"}}]}
        assert extract_delta_content(chunk) == " partial"
        assert extract_delta_content({"choices": [{"delta": {}}]}) == ""


class TestParseJsonLoose:
    """Test lenient JSON decoding"""

    def test_plain_json(self):
        result = parse_json_loose('{"a": 1}')
        assert result.ok is True
        assert result.value == {"a": 1}

    def test_fenced_json_block(self):
        result = parse_json_loose('Plan below\n```json\n{"a": [1, 2]}\n```\nDone')
        assert result.value == {"a": [1, 2]}

    def test_unlabelled_fence(self):
        assert parse_json_loose('```\n{"b": true}\n```').value == {"b": True}

    def test_outermost_braces(self):
        assert parse_json_loose('Sure! {"c": {"d": 1}} hope it helps').value == {"c": {"d": 1}}

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty(self, text):
        result = parse_json_loose(text)
        assert result.ok is False
        assert result.error == "Empty AI response"

    def test_undecodable(self):
        result = parse_json_loose("nothing to see")
        assert result.ok is False
        assert result.error


class TestNormalizePlanPayload:
    """Test plan normalization"""

    def test_defaults(self):
        plan = normalize_plan_payload({})
        assert plan.title == "Architecture Plan"
        assert plan.steps == []
        assert plan.file_tree == []

    def test_string_steps(self):
        plan = normalize_plan_payload(["Set up", "  ", "Style it"])

        assert [s.id for s in plan.steps] == ["1", "3"]
        assert plan.steps[1].title == "Style it"
        assert plan.steps[0].category == "frontend"

    def test_step_fields(self):
        plan = normalize_plan_payload({
            "title": "T",
            "fileTree": ["./index.html", "src\\app.js", ""],
            "steps": [
                {"text": "Build", "id": 7, "category": " Layout ", "files": ["/index.html"], "description": " d "},
                {"description": "no title"},
            ],
        })

        assert plan.file_tree == ["index.html", "src/app.js"]
        assert len(plan.steps) == 1
        step = plan.steps[0]
        assert (step.id, step.title, step.category, step.files, step.description) == (
            "7", "Build", "layout", ["index.html"], "d"
        )

    def test_to_dict_uses_wire_names(self):
        data = normalize_plan_payload({"fileTree": ["a.html"]}).to_dict()
        assert data["fileTree"] == ["a.html"]
        assert "file_tree" not in data
