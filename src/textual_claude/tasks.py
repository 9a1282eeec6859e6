"""Prompt builders for the common coding tasks.

Each builder returns a ``Task`` whose prompt and context can be handed to
``ConversationSession.send_task`` or ``Dispatcher.request``:

    task = explain_code(None, EditorContext(selection=code, language="python"))
    await session.send_task(task.prompt, task.context)

A builder raises ``TaskUnavailable`` when the task is switched off in
``TaskOptions`` or has nothing to work on.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import DispatchError
from .prompt import ContextLike, EditorContext, coerce_context


class TaskUnavailable(DispatchError):
    """The task is disabled or has no input."""

    reason = "TaskUnavailable"


@dataclass(frozen=True)
class TaskPrompts:
    """Instruction line that opens each task prompt."""

    code_completion: str = "Complete this code considering the context and best practices:"
    code_generation: str = "Generate clean, well-documented code with proper error handling:"
    code_explanation: str = "Explain this code in detail, including its purpose and how it works:"
    debug_analysis: str = "Analyze this error and provide specific, actionable solutions:"
    code_review: str = "Review this code for quality, security, performance, and maintainability:"
    test_generation: str = (
        "Generate comprehensive tests including edge cases and proper assertions:"
    )
    refactoring: str = "Suggest refactoring improvements focusing on clean code principles:"


@dataclass(frozen=True)
class TaskOptions:
    """Feature switches for the task builders."""

    completion: bool = True
    code_writing: bool = True
    include_type_hints: bool = True
    include_docstrings: bool = True
    include_error_handling: bool = True
    debugging: bool = True
    code_review: bool = True
    check_security: bool = True
    check_performance: bool = True
    check_maintainability: bool = True
    suggest_patterns: bool = True
    max_review_lines: int = 10000
    testing: bool = True
    generate_edge_cases: bool = True
    include_mocks: bool = True
    refactoring: bool = True
    prompts: TaskPrompts = field(default_factory=TaskPrompts)


DEFAULT_OPTIONS = TaskOptions()


@dataclass(frozen=True)
class Task:
    prompt: str
    context: EditorContext


def _fence(label: str, code: str, language: str | None) -> str:
    return f"{label}:\n```{language or ''}\n{code}\n```\n\n"


def complete_code(
    before_cursor: str | None,
    after_cursor: str | None,
    context: ContextLike = None,
    options: TaskOptions = DEFAULT_OPTIONS,
) -> Task:
    if not options.completion:
        raise TaskUnavailable("Code completion is disabled")
    ctx = coerce_context(context)

    prompt = options.prompts.code_completion + "\n\n"
    if before_cursor:
        prompt += _fence("Code before cursor", before_cursor, ctx.language)
    if after_cursor:
        prompt += _fence("Code after cursor", after_cursor, ctx.language)
    prompt += (
        "Provide the most appropriate completion for the code at the cursor position. "
        "Return only the completion code without explanations or markdown formatting."
    )
    return Task(prompt, ctx)


def generate_code(
    description: str, context: ContextLike = None, options: TaskOptions = DEFAULT_OPTIONS
) -> Task:
    if not options.code_writing:
        raise TaskUnavailable("Code generation is disabled")
    ctx = coerce_context(context)

    prompt = f"{options.prompts.code_generation}\n\nTask: {description}\n\n"
    if ctx.language:
        prompt += f"Programming language: {ctx.language}\n"
    if options.include_type_hints:
        prompt += "Include type hints where applicable.\n"
    if options.include_docstrings:
        prompt += "Include comprehensive docstrings/comments.\n"
    if options.include_error_handling:
        prompt += "Include proper error handling.\n"
    return Task(prompt, ctx)


def explain_code(
    code: str | None, context: ContextLike = None, options: TaskOptions = DEFAULT_OPTIONS
) -> Task:
    ctx = coerce_context(context)
    code = code or ctx.selection
    if not code:
        raise TaskUnavailable("No code provided for explanation")
    # the code travels as the selection block, not inside the prompt
    return Task(options.prompts.code_explanation, ctx.replace(selection=code))


def analyze_error(
    error_message: str, context: ContextLike = None, options: TaskOptions = DEFAULT_OPTIONS
) -> Task:
    if not options.debugging:
        raise TaskUnavailable("Debugging assistance is disabled")
    ctx = coerce_context(context)
    prompt = f"{options.prompts.debug_analysis}\n\nError: {error_message}"
    return Task(prompt, ctx.replace(error_text=error_message))


def review_code(
    code: str | None, context: ContextLike = None, options: TaskOptions = DEFAULT_OPTIONS
) -> Task:
    if not options.code_review:
        raise TaskUnavailable("Code review is disabled")
    ctx = coerce_context(context)
    code = code or ctx.file_content
    if not code:
        raise TaskUnavailable("No code provided for review")

    line_count = code.count("\n") + 1
    if line_count > options.max_review_lines:
        raise TaskUnavailable(f"File too large for review (max {options.max_review_lines} lines)")

    aspects = []
    if options.check_security:
        aspects.append("security vulnerabilities")
    if options.check_performance:
        aspects.append("performance issues")
    if options.check_maintainability:
        aspects.append("maintainability concerns")
    if options.suggest_patterns:
        aspects.append("design pattern improvements")

    prompt = options.prompts.code_review + "\n\n"
    if aspects:
        prompt += f"Focus on: {', '.join(aspects)}.\n\n"
    # reviewed code goes in once, as the selection
    return Task(prompt, ctx.replace(selection=code, file_content=None))


def generate_tests(
    code: str | None, context: ContextLike = None, options: TaskOptions = DEFAULT_OPTIONS
) -> Task:
    if not options.testing:
        raise TaskUnavailable("Test generation is disabled")
    ctx = coerce_context(context)
    code = code or ctx.selection
    if not code:
        raise TaskUnavailable("No code provided for test generation")

    features = []
    if options.generate_edge_cases:
        features.append("edge cases")
    if options.include_mocks:
        features.append("mock objects where needed")

    prompt = options.prompts.test_generation + "\n\n"
    if features:
        prompt += f"Include: {', '.join(features)}.\n\n"
    return Task(prompt, ctx.replace(selection=code))


def suggest_refactoring(
    code: str | None, context: ContextLike = None, options: TaskOptions = DEFAULT_OPTIONS
) -> Task:
    if not options.refactoring:
        raise TaskUnavailable("Refactoring suggestions are disabled")
    ctx = coerce_context(context)
    code = code or ctx.selection
    if not code:
        raise TaskUnavailable("No code provided for refactoring")
    return Task(options.prompts.refactoring + "\n\n", ctx.replace(selection=code))
