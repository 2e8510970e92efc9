"""
toolscript Example 02: Generate, execute, repair

Demonstrates:
- generate_and_execute with a code generator
- The repair loop feeding an error back for a fix
- Switching to a real model via configuration

Runs offline with ScriptedGenerator. Set ANTHROPIC_API_KEY (or
OPENAI_API_KEY with TOOLSCRIPT_GENERATION_PROVIDER=openai) and pass
--live to use a real model.
"""
import asyncio
import sys

from toolscript import CodeModeEngine, LocalToolset, RepairExhaustedError, create_generator, tool
from toolscript.llm.providers import ScriptedGenerator


@tool
def get_price(symbol: str) -> float:
    """Latest price for a ticker symbol."""
    prices = {"ACME": 12.5, "INIT": 40.0}
    if symbol not in prices:
        raise KeyError(f"unknown symbol {symbol}")
    return prices[symbol]


async def main():
    print("=" * 60)
    print("toolscript Example 02: Generate, execute, repair")
    print("=" * 60)

    if "--live" in sys.argv:
        generator = create_generator()
    else:
        # First answer uses a wrong argument name, second one fixes it
        generator = ScriptedGenerator([
            '```python\nprice = await tools.get_price({"ticker": "ACME"})\nreturn price * 10\n```',
            '```python\nprice = await tools.get_price({"symbol": "ACME"})\nprint("price", price)\nreturn price * 10\n```',
        ])

    engine = CodeModeEngine(LocalToolset([get_price]), generator=generator)

    try:
        result = await engine.generate_and_execute(
            "What do 10 shares of ACME cost?", max_retries=2
        )
    except RepairExhaustedError as e:
        print(f"Gave up after {e.attempts} attempts: {e.last_error}")
        return

    print(f"\nAttempts: {len(result.attempts)}")
    for i, attempt in enumerate(result.attempts, 1):
        status = "ok" if attempt.result.success else attempt.result.error.splitlines()[0]
        print(f"  #{i}: {status}")
    print(f"\nFinal code:\n{result.code}")
    print(f"\nResult: {result.result}")
    print(f"Output: {result.output}")


if __name__ == "__main__":
    asyncio.run(main())
