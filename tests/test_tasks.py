"""Tests for the coding task prompt builders."""

import pytest

from textual_claude.prompt import EditorContext, build_cli_prompt
from textual_claude.tasks import (
    TaskOptions,
    TaskUnavailable,
    analyze_error,
    complete_code,
    explain_code,
    generate_code,
    generate_tests,
    review_code,
    suggest_refactoring,
)


class TestCompletion:
    """Tests for code completion prompts."""

    def test_includes_both_sides_of_cursor(self) -> None:
        """Code before and after the cursor is fenced separately."""
        task = complete_code("def f(", "):", {"language": "python"})
        assert "Code before cursor:\n```python\ndef f(\n```" in task.prompt
        assert "Code after cursor:\n```python\n):\n```" in task.prompt
        assert task.prompt.endswith("without explanations or markdown formatting.")

    def test_disabled(self) -> None:
        """Completion can be switched off."""
        with pytest.raises(TaskUnavailable, match="disabled"):
            complete_code("x", None, options=TaskOptions(completion=False))


class TestGeneration:
    """Tests for code generation prompts."""

    def test_mentions_language_and_requirements(self) -> None:
        """Language and enabled requirements are listed."""
        task = generate_code("parse a CSV", {"filetype": "python"})
        assert "Task: parse a CSV" in task.prompt
        assert "Programming language: python" in task.prompt
        assert "Include type hints where applicable." in task.prompt
        assert "Include proper error handling." in task.prompt

    def test_requirements_follow_options(self) -> None:
        """Disabled requirements are left out."""
        options = TaskOptions(include_type_hints=False, include_docstrings=False)
        task = generate_code("x", options=options)
        assert "type hints" not in task.prompt
        assert "docstrings" not in task.prompt


class TestExplain:
    """Tests for code explanation prompts."""

    def test_uses_selection_from_context(self) -> None:
        """Without explicit code the selection is explained."""
        task = explain_code(None, EditorContext(selection="x = 1"))
        assert task.context.selection == "x = 1"

    def test_explicit_code_becomes_selection(self) -> None:
        """Explicit code is sent as the selection block."""
        task = explain_code("y = 2", EditorContext(selection="x = 1"))
        assert task.context.selection == "y = 2"
        assert "Selected code:\n```\ny = 2\n```" in build_cli_prompt(task.prompt, task.context)

    def test_nothing_to_explain(self) -> None:
        """No code and no selection is an error."""
        with pytest.raises(TaskUnavailable, match="No code provided for explanation"):
            explain_code(None)


class TestAnalyzeError:
    """Tests for error analysis prompts."""

    def test_error_in_prompt_and_context(self) -> None:
        """The error is part of the prompt and the context."""
        task = analyze_error("KeyError: 'x'")
        assert "Error: KeyError: 'x'" in task.prompt
        assert task.context.error_text == "KeyError: 'x'"

    def test_disabled(self) -> None:
        """Debugging help can be switched off."""
        with pytest.raises(TaskUnavailable):
            analyze_error("boom", options=TaskOptions(debugging=False))


class TestReview:
    """Tests for code review prompts."""

    def test_focus_aspects(self) -> None:
        """Enabled review aspects are listed."""
        task = review_code("x = 1")
        assert "security vulnerabilities" in task.prompt
        assert "design pattern improvements" in task.prompt

    def test_reviews_file_content(self) -> None:
        """Without explicit code the whole file is reviewed, sent once."""
        task = review_code(None, {"file_content": "a = 1\nb = 2"})
        assert task.context.selection == "a = 1\nb = 2"
        assert task.context.file_content is None

    def test_too_large(self) -> None:
        """Files over the line limit are refused."""
        with pytest.raises(TaskUnavailable, match="max 2 lines"):
            review_code("1\n2\n3", options=TaskOptions(max_review_lines=2))

    def test_nothing_to_review(self) -> None:
        """No code is an error."""
        with pytest.raises(TaskUnavailable, match="No code provided for review"):
            review_code(None)


class TestTestsAndRefactoring:
    """Tests for test generation and refactoring prompts."""

    def test_generate_tests_features(self) -> None:
        """Edge cases and mocks are requested when enabled."""
        task = generate_tests("def f(): pass")
        assert "Include: edge cases, mock objects where needed." in task.prompt

    def test_generate_tests_without_code(self) -> None:
        """Test generation needs code."""
        with pytest.raises(TaskUnavailable):
            generate_tests(None)

    def test_refactoring(self) -> None:
        """Refactoring prompts carry the code as the selection."""
        task = suggest_refactoring("x=1")
        assert task.prompt.startswith("Suggest refactoring improvements")
        assert task.context.selection == "x=1"

    def test_refactoring_disabled(self) -> None:
        """Refactoring suggestions can be switched off."""
        with pytest.raises(TaskUnavailable, match="disabled"):
            suggest_refactoring("x", options=TaskOptions(refactoring=False))
