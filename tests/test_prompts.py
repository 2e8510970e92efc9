"""Tests for prompt construction and code extraction."""

from __future__ import annotations

from toolscript.codemode.prompts import (
    CODE_MODE_EXAMPLES,
    CODE_MODE_SYSTEM_PROMPT,
    build_generation_prompt,
    build_repair_prompt,
    extract_code,
)

INTERFACE = "class Tools:\n    async def echo(self, input: EchoInput) -> Any: ...\n\n\ntools: Tools"


class TestExtractCode:
    """Tests for extract_code()."""

    def test_python_fence(self):
        response = "Here you go:\n```python\nreturn 1\n```\nHope that helps."
        assert extract_code(response) == "return 1"

    def test_fence_without_language(self):
        assert extract_code("```\nx = 1\nreturn x\n```") == "x = 1\nreturn x"

    def test_other_language_tag(self):
        assert extract_code("```py\nreturn 2\n```") == "return 2"

    def test_first_block_wins(self):
        response = "```python\nreturn 'first'\n```\nor\n```python\nreturn 'second'\n```"
        assert extract_code(response) == "return 'first'"

    def test_no_fence_uses_whole_response(self):
        assert extract_code("  \nreturn 3\n  ") == "return 3"

    def test_indentation_inside_block_kept(self):
        response = "```python\nfor i in range(2):\n    print(i)\n```"
        assert extract_code(response) == "for i in range(2):\n    print(i)"

    def test_indented_block_is_dedented(self):
        """A fence nested in a markdown list is indented as a whole."""
        response = "1. Run this:\n    ```python\n    x = 1\n    if x:\n        return x\n    ```\n"
        assert extract_code(response) == "x = 1\nif x:\n    return x"


class TestGenerationPrompt:
    """Tests for build_generation_prompt()."""

    def test_sections_in_order(self):
        prompt = build_generation_prompt(INTERFACE, "Echo hello")

        assert prompt.startswith("AVAILABLE TOOLS:\n```python\n")
        assert prompt.index(INTERFACE) < prompt.index("EXAMPLES:") < prompt.index("TASK:\nEcho hello")
        assert prompt.rstrip().endswith("Output ONLY the code, no explanations.")

    def test_examples_optional(self):
        prompt = build_generation_prompt(INTERFACE, "Echo hello", include_examples=False)

        assert "EXAMPLES:" not in prompt
        assert CODE_MODE_EXAMPLES not in prompt
        assert "TASK:\nEcho hello" in prompt


class TestRepairPrompt:
    """Tests for build_repair_prompt()."""

    def test_contains_code_and_error(self):
        prompt = build_repair_prompt(
            INTERFACE,
            "Echo hello",
            "return await tools.ech({})",
            "AttributeError: No tool named 'ech'",
        )

        assert INTERFACE in prompt
        assert "TASK:\nEcho hello" in prompt
        assert "```python\nreturn await tools.ech({})\n```" in prompt
        assert "ERROR:\nAttributeError: No tool named 'ech'" in prompt


class TestSystemPrompt:
    def test_mentions_tools_object(self):
        assert "tools" in CODE_MODE_SYSTEM_PROMPT
        assert "await" in CODE_MODE_SYSTEM_PROMPT

    def test_examples_are_extractable(self):
        """Every worked example is a fenced python block."""
        assert CODE_MODE_EXAMPLES.count("```python") == 3
