"""Prompt construction and code extraction for code generation."""

from __future__ import annotations

import re
import textwrap

CODE_MODE_SYSTEM_PROMPT = (
    "You are a code generation assistant that writes Python code to accomplish "
    "tasks using the available tools.\n"
    "\n"
    "IMPORTANT RULES:\n"
    "1. Write clean, executable Python code. It runs as the body of an async "
    "function, so you can use `await` and `return` at the top level\n"
    "2. Use `await` for every tool call\n"
    "3. All tools are available via the `tools` object "
    "(e.g. `await tools.list_directory({\"path\": \"./\"})`)\n"
    "4. Use print() or console.log() to output results and progress\n"
    "5. Return the final result at the end of your code\n"
    "6. Handle errors gracefully with try/except\n"
    "7. Only these modules can be imported: math, re, json, collections, "
    "itertools, functools, string, textwrap, unicodedata, datetime, decimal, "
    "fractions, random, statistics, operator, copy, bisect, heapq, uuid, "
    "asyncio (sleep, gather, wait_for only), time\n"
    "8. Do NOT access files, the network, the environment or other processes - "
    "only use the provided tools\n"
    "9. Use f-strings for formatting; `.format()` only works on string literals\n"
    "10. Keep code simple and focused on the task\n"
    "\n"
    "Your code will be executed in a sandboxed environment with access only to "
    "the tools provided."
)

CODE_MODE_EXAMPLES = '''
EXAMPLE 1 - Simple tool usage:
Task: List all files in the current directory
Code:
```python
files = await tools.list_directory({"path": "./"})
print("Found", len(files), "files")
return files
```

EXAMPLE 2 - Multi-step operation:
Task: Find all Python files and count them
Code:
```python
files = await tools.list_directory({"path": "./"})
py_files = [f for f in files if f["name"].endswith(".py")]
print("Found", len(py_files), "Python files:")
for f in py_files:
    print(" -", f["name"])
return {"count": len(py_files), "files": py_files}
```

EXAMPLE 3 - Error handling:
Task: Read a file safely
Code:
```python
try:
    content = await tools.read_file({"path": "./README.md"})
    print("File read successfully")
    return content
except Exception as error:
    console.error("Failed to read file:", str(error))
    return None
```
'''

_CODE_BLOCK = re.compile(r"```[\w+.-]*[ \t]*\r?\n(.*?)```", re.DOTALL)


def build_generation_prompt(
    interface_text: str,
    task_prompt: str,
    *,
    include_examples: bool = True,
) -> str:
    """Build the first prompt of a generate-and-execute run."""
    parts: list[str] = [
        "AVAILABLE TOOLS:",
        "```python",
        interface_text,
        "```",
        "",
    ]

    if include_examples:
        parts.extend(["EXAMPLES:", CODE_MODE_EXAMPLES, ""])

    parts.extend(
        [
            "TASK:",
            task_prompt,
            "",
            "Write Python code to accomplish this task. Output ONLY the code, no explanations.",
        ]
    )
    return "\n".join(parts)


def build_repair_prompt(
    interface_text: str,
    task_prompt: str,
    failed_code: str,
    error: str,
) -> str:
    """Build the follow-up prompt that asks for a corrected version of failed code."""
    parts = [
        "AVAILABLE TOOLS:",
        "```python",
        interface_text,
        "```",
        "",
        "TASK:",
        task_prompt,
        "",
        "The following code was written for this task but failed:",
        "```python",
        failed_code,
        "```",
        "",
        "ERROR:",
        error,
        "",
        "Fix the code so that it accomplishes the task. Output ONLY the corrected "
        "code, no explanations.",
    ]
    return "\n".join(parts)


def extract_code(response: str) -> str:
    """
    Extract executable code from a model response.

    Returns the body of the first fenced block (```python ... ```, any
    language tag or none), dedented so a block indented as a whole (inside a
    markdown list, say) stays valid. Without a fenced block, the whole trimmed
    response is treated as code.
    """
    match = _CODE_BLOCK.search(response)
    if match:
        return textwrap.dedent(match.group(1)).strip()
    return response.strip()
