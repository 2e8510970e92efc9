"""
toolscript Example 01: Executing code against tools

Demonstrates:
- Defining tools with @tool and a LocalToolset
- The typed interface text shown to a model
- Running hand-written code in the sandbox
- Captured output, timeouts and denied capabilities
"""
import asyncio
import json

from toolscript import CodeModeEngine, LocalToolset, tool


@tool
def list_directory(path: str) -> list[dict]:
    """List the entries of a directory."""
    return [
        {"name": "README.md", "size": 1200},
        {"name": "engine.py", "size": 5400},
        {"name": "api.py", "size": 3100},
    ]


@tool
def read_file(path: str, max_bytes: int = 4096) -> str:
    """Read a text file."""
    return f"# contents of {path}"[:max_bytes]


async def main():
    print("=" * 60)
    print("toolscript Example 01: Executing code against tools")
    print("=" * 60)

    engine = CodeModeEngine(LocalToolset([list_directory, read_file]))

    print("\n--- Interface text ---")
    print(await engine.interface_text())

    print("\n--- Run code ---")
    code = '''
files = await tools.list_directory({"path": "./"})
py_files = [f for f in files if f["name"].endswith(".py")]
for f in py_files:
    print(" -", f["name"])
return {"count": len(py_files), "bytes": sum(f["size"] for f in py_files)}
'''
    result = await engine.execute(code)
    print(f"Success: {result.success}")
    print(f"Result: {json.dumps(result.result)}")
    print(f"Output: {result.output}")
    print(f"Duration: {result.duration_ms}ms")

    print("\n--- Denied capabilities are None ---")
    result = await engine.execute("return {'os': os, 'open': open}")
    print(f"Result: {result.result}")

    print("\n--- Timeout ---")
    result = await engine.execute("while True:\n    pass", timeout_ms=200)
    print(f"Status: {result.status.name}, error: {result.error}")

    print("\n--- Runtime error ---")
    result = await engine.execute("x = 1\nraise ValueError('boom')")
    print(f"Kind: {result.error_kind.value}")
    print(result.error)


if __name__ == "__main__":
    asyncio.run(main())
